"""
Run orchestration: configuration, logging and result export.
"""
