import logging
import logging.handlers
from pathlib import Path

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_FILENAME = 'print-relay.log'


def setup_logging(log_level='INFO', log_dir='logs', max_files=14):
    """Console plus a log file in log_dir rotated at midnight, max_files days kept."""
    level = getattr(logging, str(log_level).upper(), logging.INFO)
    handlers = [logging.StreamHandler()]
    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.TimedRotatingFileHandler(
                Path(log_dir) / LOG_FILENAME,
                when='midnight',
                backupCount=max_files,
                encoding='utf-8',
            )
        )
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)


def get_logger(name):
    return logging.getLogger(name)
