import logging

def setup_logging(level: str = "INFO"):
    levelno = getattr(logging, level.upper(), logging.INFO)
    fmt = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
    logging.basicConfig(level=levelno, format=fmt)
    # werkzeug logs every dashboard poll at INFO
    if levelno > logging.DEBUG:
        logging.getLogger("werkzeug").setLevel(logging.WARNING)
