import logging, json, sys, time, os

# one JSON object per line; pid ties the lines of one invocation together
LOG_FORMAT = json.dumps({
    "ts": "%(asctime)s",
    "level": "%(levelname)s",
    "pid": "%(process)d",
    "name": "%(name)s",
    "msg": "%(message)s"
})


def get_logger(name="ACS", level=logging.INFO, to_file=None):
    """Unified structured logger for the keyholder tool.

    Records go to stderr because stdout is the SSH user's terminal.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%SZ")
        formatter.converter = time.gmtime  # Use UTC timestamps

        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

        if to_file:
            # Ensure the directory exists before writing
            os.makedirs(os.path.dirname(to_file) or ".", exist_ok=True)
            file_handler = logging.FileHandler(to_file)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger


def configure_logging(level="WARNING", to_file=None):
    """Set up the ``ACS`` logger every ``ACS.*`` component logger propagates to."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    return get_logger("ACS", level=level, to_file=to_file)
