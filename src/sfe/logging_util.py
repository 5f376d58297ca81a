"""Configure logging for the sfe codebase."""
import logging
import os
import coloredlogs

from sfe.filepaths import make_containing_folder

LOG_FORMAT = "%(asctime)s [%(levelname)4s] %(name)s:%(lineno)s %(message)s"
# name given to the file handler installed by `configure_root_logger`
LOGFILE_HANDLER_NAME = "sfe_logfile"


def get_logger(name: str) -> logging.Logger:
    """Helper function to append `sfe` to the logger name and return a logger.

    As a result, all returned loggers are children of the top-level `sfe` logger.
    """
    if name.startswith("sfe.") or name == "sfe":
        return logging.getLogger(name)
    return logging.getLogger(f"sfe.{name}")


def configure_root_logger(logfile: str | None = None, level: str = "INFO"):
    """Configure the sfe logger to print to the console, and optionally to a file.

    This function is safe to call multiple times, since it will check if logging
    handlers have already been installed and skip them if so.

    Logging is printed with the following format:
    ```
    2023-02-21 16:10:44 [INFO] sfe.data_pipeline:21 This is an example
    ```
    """
    root_logger = logging.getLogger()
    sfe_logger = logging.getLogger("sfe")

    # Direct the output of the sfe logger to the terminal (and color it). Make
    # sure this hasn't been done already to avoid adding duplicate handlers.
    if len(sfe_logger.handlers) == 0:
        coloredlogs.install(fmt=LOG_FORMAT, level=level, logger=sfe_logger)
        sfe_logger.addHandler(logging.NullHandler())

    # Send everything to the log file by adding a file handler to the root logger.
    if logfile is not None:
        make_containing_folder(logfile)
        existing = False
        # a previous run may have logged to another file. Close it so that each run
        # only writes to its own log.
        for handler in list(root_logger.handlers):
            if handler.get_name() != LOGFILE_HANDLER_NAME:
                continue
            if handler.baseFilename == os.path.abspath(logfile):
                existing = True
            else:
                root_logger.removeHandler(handler)
                handler.close()
        if not existing:
            file_logger = logging.FileHandler(logfile, mode="w")
            file_logger.set_name(LOGFILE_HANDLER_NAME)
            file_logger.setFormatter(logging.Formatter(LOG_FORMAT))
            root_logger.addHandler(file_logger)
