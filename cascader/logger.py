"""Logging setup.

The rest of the code gets the logger through this module rather than
``logging.getLogger`` to make sure that it is configured.

Logging levels are used for specific purposes:

- errors are used in ``LOGGER`` for stylesheets that can't be found, fetched
  or decoded;
- warnings are used in ``LOGGER`` for bad CSS syntax, selectors that can't be
  inlined and malformed ``style`` attributes;
- debug messages are used in ``LOGGER`` for at-rules dropped from stylesheets
  and selectors rejected by the selector compiler;
- infos are used in ``PROGRESS_LOGGER`` to advertise transformation steps.

"""

import contextlib
import logging

LOGGER = logging.getLogger('cascader')
if not LOGGER.handlers:  # pragma: no cover
    LOGGER.setLevel(logging.WARNING)
    LOGGER.addHandler(logging.NullHandler())

PROGRESS_LOGGER = logging.getLogger('cascader.progress')

FORMAT = '%(levelname)s: %(message)s'
DEBUG_FORMAT = '%(levelname)s: %(filename)s:%(lineno)d (%(funcName)s): %(message)s'


class CallbackHandler(logging.Handler):
    """A logging handler that calls a function for every message."""
    def __init__(self, callback):
        logging.Handler.__init__(self)
        self.emit = callback


def configure_logging(verbose=False, debug=False, quiet=False, stream=None):
    """Send messages of ``LOGGER`` to ``stream``, stderr by default.

    Return the added handler, or ``None`` when ``quiet`` is set.

    """
    if debug:
        LOGGER.setLevel(logging.DEBUG)
    elif verbose:
        LOGGER.setLevel(logging.INFO)
    if quiet:
        return None
    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(DEBUG_FORMAT if debug else FORMAT))
    LOGGER.addHandler(handler)
    return handler


@contextlib.contextmanager
def capture_logs(level=logging.INFO):
    """Return a context manager that captures messages logged by Cascader.

    Messages are given as ``'LEVEL: message'`` strings, progress messages and
    messages below ``level`` are dropped.

    """
    messages = []

    def emit(record):
        if record.name == PROGRESS_LOGGER.name or record.levelno < level:
            return
        messages.append(f'{record.levelname.upper()}: {record.getMessage()}')

    previous_handlers, previous_level = LOGGER.handlers, LOGGER.level
    LOGGER.handlers = [CallbackHandler(emit)]
    LOGGER.setLevel(logging.DEBUG)
    try:
        yield messages
    finally:
        LOGGER.handlers = previous_handlers
        LOGGER.setLevel(previous_level)
