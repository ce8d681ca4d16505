import logging
import sys
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(
    log_dir: Optional[Union[str, Path]] = None,
    log_level: str = "INFO",
    log_file: str = "transits.log"
) -> logging.Logger:
    """
    Setup logging configuration.

    Parameters
    ----------
    log_dir : str or Path, optional
        Directory to save log files. Console only when None.
    log_level : str
        Logging level (INFO, DEBUG, etc.).
    log_file : str
        Name of the log file.

    Returns
    -------
    logging.Logger
        Root logger instance.
    """
    logger = logging.getLogger()
    logger.setLevel(log_level.upper())

    # Calling twice must not duplicate output
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
