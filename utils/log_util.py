"""Logging setup shared by the command-line drivers. """

import logging
import os

LOG_FORMAT = '%(asctime)s | %(levelname)s | %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logger(name=None, log_dir=None, console=True, level=logging.INFO):
    """Configure a logger with a console and, optionally, a file handler.

    Args:
        name: str, logger name, None for the root logger
        log_dir: str, directory of `<name>.log`; no file handler if None
        console: bool, also log to stderr
    Return:
        the configured logging.Logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers = []
    formatter = logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT)

    if log_dir is not None:
        os.makedirs(log_dir, exist_ok=True)
        fh = logging.FileHandler(os.path.join(log_dir, '{}.log'.format(name or 'simulation')), encoding='utf-8')
        fh.setLevel(level)
        fh.setFormatter(formatter)
        logger.addHandler(fh)

    if console:
        ch = logging.StreamHandler()
        ch.setLevel(level)
        ch.setFormatter(formatter)
        logger.addHandler(ch)
    return logger


def format_metrics(metrics):
    return ', '.join('{}={:.4f}'.format(k, v) for k, v in metrics.items() if v is not None)
