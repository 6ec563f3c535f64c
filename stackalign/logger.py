"""
Copyright © 2023 Howard Hughes Medical Institute, Authored by Carsen Stringer and Marius Pachitariu.
"""
import io
import logging
import sys


class TqdmToLogger(io.StringIO):
    """
    Output stream for tqdm which will output to logger module instead of
    the stdout.
    """
    logger = None
    level = None
    buf = ""

    def __init__(self, logger, level=None):
        super(TqdmToLogger, self).__init__()
        self.logger = logger
        self.level = level or logging.INFO

    def write(self, buf):
        self.buf = buf.strip("\r\n\t ")

    def flush(self):
        if self.buf:
            self.logger.log(self.level, self.buf)


def set_logger(level=logging.INFO, logfile=None):
    """ send stackalign log messages to stdout (and optionally to 'logfile') """
    logger = logging.getLogger("stackalign")
    logger.setLevel(level)
    handlers = [logging.StreamHandler(sys.stdout)]
    if logfile is not None:
        handlers.append(logging.FileHandler(logfile))
    for handler in handlers:
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(handler)
    return logger
