import io
import logging

from cmdkit.log import LOGGER_NAME, configure_logging


def test_configure_logging_is_idempotent():
    stream = io.StringIO()
    logger = configure_logging(verbose=True, stream=stream)
    try:
        configure_logging(verbose=True, stream=stream)
        marked = [h for h in logger.handlers if getattr(h, "_cmdkit_handler", False)]
        assert len(marked) == 1
        assert logger.level == logging.DEBUG

        logging.getLogger(f"{LOGGER_NAME}.tests").debug("hello there")
        assert "DEBUG" in stream.getvalue()
        assert "cmdkit.tests: hello there" in stream.getvalue()

        configure_logging(verbose=False)
        assert logger.level == logging.WARNING
    finally:
        for handler in list(logger.handlers):
            if getattr(handler, "_cmdkit_handler", False):
                logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)
