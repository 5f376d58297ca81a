from sfe.logging_util import configure_root_logger

# Set up the sfe logging configuration once.
configure_root_logger(logfile=None)
