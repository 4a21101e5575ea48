"""
Main pipeline runner for orchestrating a metro network simulation.
"""

import argparse
import copy
import json
import logging
import os
import sys
import time
from dataclasses import asdict
from datetime import datetime
from typing import Any, Dict, List, Optional

import yaml

from ..components.transit_network import TransitNetwork
from ..core.data_models import SimulationConfig
from ..core.errors import NetworkConfigurationError
from ..core.simulation_engine import SimulationEngine

DEFAULT_CONFIG = {
    'simulation': {
        'tick_seconds': 1.0 / 60.0,
        'duration_seconds': 60.0,
        'seed': 30006,
    },
    'data': {
        'stations_file': 'data/stations.csv',
        'lines_file': 'data/lines.csv',
        'trains_file': 'data/trains.csv',
    },
    'output': {
        'directory': 'output',
        'summary': True,
        'debug': False,
    },
}


class SimulationPipeline:
    """
    Loads configuration, builds the network, runs the engine and exports results.
    """

    def __init__(self, config_path: str = None, overrides: Optional[Dict[str, Dict[str, Any]]] = None):
        """
        Initialize the pipeline.

        Parameters:
        -----------
        config_path : str
            Path to the YAML configuration file.
        overrides : Optional[Dict[str, Dict[str, Any]]]
            Section-wise values that take precedence over the file.
        """
        self.config_path = config_path or "config/simulation_config.yaml"
        self.config = self._load_config()
        for section, values in (overrides or {}).items():
            self.config.setdefault(section, {}).update(
                {k: v for k, v in values.items() if v is not None}
            )
        self.logger = self._setup_logging()

        self.results: Dict[str, Any] = {}
        self.engine: Optional[SimulationEngine] = None

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file, falling back to the defaults."""
        config = copy.deepcopy(DEFAULT_CONFIG)
        try:
            with open(self.config_path, 'r') as file:
                loaded = yaml.safe_load(file) or {}
        except (OSError, yaml.YAMLError) as e:
            print(f"Error loading config: {str(e)}; using defaults")
            return config

        for section, values in loaded.items():
            if isinstance(values, dict):
                config.setdefault(section, {}).update(values)
            else:
                config[section] = values
        return config

    def _setup_logging(self) -> logging.Logger:
        """Set up logging configuration."""
        output_dir = self.config['output']['directory']
        os.makedirs(output_dir, exist_ok=True)

        log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        log_level = logging.DEBUG if self.config['output'].get('debug', False) else logging.INFO

        log_file = os.path.join(output_dir, f'simulation_{datetime.now().strftime("%Y%m%d_%H%M%S")}.log')

        logging.basicConfig(
            level=log_level,
            format=log_format,
            handlers=[
                logging.FileHandler(log_file),
                logging.StreamHandler(sys.stdout)
            ]
        )

        logger = logging.getLogger('SimulationPipeline')
        logger.info(f"Logging initialized. Log file: {log_file}")

        return logger

    def simulation_config(self) -> SimulationConfig:
        sim = self.config['simulation']
        data = self.config['data']
        output = self.config['output']
        return SimulationConfig(
            tick_seconds=float(sim.get('tick_seconds', 1.0 / 60.0)),
            duration_seconds=float(sim.get('duration_seconds', 60.0)),
            seed=int(sim.get('seed', 30006)),
            stations_file=data.get('stations_file'),
            lines_file=data.get('lines_file'),
            trains_file=data.get('trains_file'),
            output_dir=output.get('directory', 'output'),
            summary=bool(output.get('summary', True)),
            debug=bool(output.get('debug', False)),
        )

    def validate_inputs(self) -> bool:
        """
        Validate input data and configuration.

        Returns:
        --------
        bool
            True if validation passes, False otherwise.
        """
        self.logger.info("Starting input validation...")

        try:
            config = self.simulation_config()
        except (TypeError, ValueError) as e:
            self.logger.error(f"Invalid simulation parameters: {str(e)}")
            return False

        for label in ('stations_file', 'lines_file', 'trains_file'):
            path = getattr(config, label)
            if not path or not os.path.exists(path):
                self.logger.error(f"Data file not found ({label}): {path}")
                return False

        if config.tick_seconds <= 0:
            self.logger.error("Tick length must be positive")
            return False

        if config.duration_seconds <= 0:
            self.logger.error("Duration must be positive")
            return False

        if config.duration_seconds / config.tick_seconds > 1_000_000:
            self.logger.warning(f"Long simulation: {config.duration_seconds / config.tick_seconds:.0f} ticks")

        self.logger.info("Input validation completed successfully")
        return True

    def build_network(self, config: SimulationConfig) -> TransitNetwork:
        """Load the network described by the configured data files."""
        self.logger.info("Loading network data...")
        network = TransitNetwork().load_network_data(
            config.stations_file, config.lines_file, config.trains_file
        )
        self.logger.info(f"Loaded {len(network.lines)} lines, {len(network.stations)} stations "
                         f"and {len(network.trains)} trains")
        return network

    def run_simulation(self) -> bool:
        """
        Run the main simulation and export its results.

        Returns:
        --------
        bool
            True if the simulation completes, False if the network is malformed.
        """
        self.logger.info("Starting simulation...")
        config = self.simulation_config()

        try:
            network = self.build_network(config)
        except NetworkConfigurationError as e:
            self.logger.error(f"Network configuration error: {str(e)}")
            return False

        self.engine = SimulationEngine(network, config)
        positions_df = self.engine.run()

        output_dir = config.output_dir
        self.logger.info(f"Exporting results to {output_dir}...")
        self.export_results(output_dir, positions_df)

        self.results = {
            'position_records': len(positions_df),
            'event_records': len(self.engine.context.events),
            'output_directory': output_dir,
        }

        if config.summary:
            self.results['summary'] = self.engine.summary()
            for key, value in self.results['summary'].items():
                self.logger.info(f"  {key}: {value}")

        return True

    def export_results(self, output_dir: str, positions_df) -> List[str]:
        """Write events, train positions, failures and summary to ``output_dir``."""
        os.makedirs(output_dir, exist_ok=True)
        written = []

        events_file = os.path.join(output_dir, 'events.csv')
        self.engine.context.events.export_csv(events_file)
        written.append(events_file)

        positions_file = os.path.join(output_dir, 'train_positions.csv')
        positions_df.to_csv(positions_file, index=False)
        written.append(positions_file)

        summary_file = os.path.join(output_dir, 'summary.json')
        summary = self.engine.summary()
        summary['failures'] = [asdict(f) for f in self.engine.failures.values()]
        with open(summary_file, 'w') as f:
            json.dump(summary, f, indent=2)
        written.append(summary_file)

        return written

    def run_pipeline(self) -> Dict[str, Any]:
        """
        Run the complete pipeline.

        Returns:
        --------
        Dict[str, Any]
            Pipeline results and metadata.
        """
        pipeline_start_time = time.time()
        self.logger.info("=" * 60)
        self.logger.info(" Metro Network Simulation Pipeline ".center(60, "="))
        self.logger.info("=" * 60)

        self.logger.info("Stage 1: Input Validation")
        if not self.validate_inputs():
            return {
                'success': False,
                'stage': 'validation',
                'error': 'Input validation failed',
                'duration_seconds': time.time() - pipeline_start_time
            }

        self.logger.info("Stage 2: Simulation Execution")
        if not self.run_simulation():
            return {
                'success': False,
                'stage': 'simulation',
                'error': 'Simulation could not start',
                'duration_seconds': time.time() - pipeline_start_time
            }

        pipeline_duration = time.time() - pipeline_start_time
        self.logger.info("=" * 60)
        self.logger.info("Pipeline completed successfully!")
        self.logger.info(f"Total duration: {pipeline_duration:.2f} seconds")
        self.logger.info("=" * 60)

        return {
            'success': True,
            'duration_seconds': pipeline_duration,
            'results': self.results,
            'config': self.config,
            'timestamp': datetime.now().isoformat()
        }


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Run the metro network simulation.')

    parser.add_argument('--config', type=str, default='config/simulation_config.yaml',
                        help='Path to YAML configuration file')
    parser.add_argument('--duration', type=float,
                        help='Simulated seconds to run')
    parser.add_argument('--tick', type=float,
                        help='Seconds advanced per tick')
    parser.add_argument('--seed', type=int,
                        help='Random seed for reproducibility')
    parser.add_argument('--output-dir', type=str,
                        help='Directory to save output files')
    parser.add_argument('--summary', action='store_true', default=None,
                        help='Log summary statistics after simulation')
    parser.add_argument('--debug', action='store_true', default=None,
                        help='Enable debug output')

    return parser.parse_args(argv)


def main(argv=None):
    """Main function for running the pipeline."""
    args = parse_args(argv)

    overrides = {
        'simulation': {
            'duration_seconds': args.duration,
            'tick_seconds': args.tick,
            'seed': args.seed,
        },
        'output': {
            'directory': args.output_dir,
            'summary': args.summary,
            'debug': args.debug,
        },
    }

    pipeline = SimulationPipeline(config_path=args.config, overrides=overrides)
    results = pipeline.run_pipeline()

    if results['success']:
        print(f"Pipeline completed successfully in {results['duration_seconds']:.2f} seconds")
        sys.exit(0)
    else:
        print(f"Pipeline failed at stage '{results['stage']}': {results['error']}")
        sys.exit(1)


if __name__ == "__main__":
    main()
