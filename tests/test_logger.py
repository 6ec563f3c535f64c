import logging

from stackalign import set_logger
from stackalign.logger import TqdmToLogger


def test_set_logger_writes_to_logfile(tmp_path):
    logfile = tmp_path / "stackalign.log"
    logger = set_logger(logging.DEBUG, logfile)
    try:
        logging.getLogger("stackalign.registration.register").info("aligned 3 frames")
        for handler in logger.handlers:
            handler.flush()
        assert "[INFO] aligned 3 frames" in logfile.read_text()
    finally:
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)


def test_tqdm_output_goes_to_logger(caplog):
    logger = logging.getLogger("stackalign.test")
    out = TqdmToLogger(logger)
    with caplog.at_level(logging.INFO, logger="stackalign"):
        out.write("\r 50%|#####     | 5/10 \n")
        out.flush()
        out.write("")
        out.flush()
    assert [r.getMessage() for r in caplog.records] == ["50%|#####     | 5/10"]
