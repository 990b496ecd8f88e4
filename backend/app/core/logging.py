import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level_name: str = "INFO") -> None:
    level = getattr(logging, level_name.strip().upper(), logging.INFO)
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level)
        return
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # engineio logs every packet at INFO
    logging.getLogger("engineio.server").setLevel(max(level, logging.WARNING))
