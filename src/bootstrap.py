#!/usr/bin/env python3
"""
File: bootstrap.py
Author: Bastian Cerf
Date: 23/08/2025
Description:
    DagmarNG program bootstrap.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import logging, logging.handlers
import argparse
import socket
from typing import Any, Optional

# Internal libraries
from local_config import LocalConfig, CONFIG_FILE_PATH

logger = logging.getLogger(__name__)


# Logging configuration
LOGGING_FILE_NAME = "dagmar.log"
LOGGING_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def _configure_logging():
    """
    Configure the logging module.

    Logs are saved in log files (.log) with a time rotating strategy.
    A new log file is created at midnight and they are available up to
    7 days. Logs are also printed in the standard output stream.
    """

    class ColorFormatter(logging.Formatter):
        """
        Colors the log level name on the console.
        """

        COLORS = {
            "DEBUG": "\033[94m",  # Blue
            "INFO": "\033[92m",  # Green
            "WARNING": "\033[93m",  # Yellow
            "ERROR": "\033[91m",  # Red
            "CRITICAL": "\033[41m",  # White on Red
            "RESET": "\033[0m",
        }

        def __init__(self):
            super().__init__(LOGGING_FORMAT)

        def format(self, record: logging.LogRecord):
            # Work on a copy, the record is shared with the file handler
            record = logging.makeLogRecord(record.__dict__)
            color = self.COLORS.get(record.levelname, self.COLORS["RESET"])
            record.levelname = f"{color}{record.levelname}{self.COLORS['RESET']}"
            return super().format(record)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(ColorFormatter())
    # Configure logging once for all modules
    logging.basicConfig(
        level=logging.DEBUG,
        format=LOGGING_FORMAT,
        encoding="utf-8",
        handlers=[
            logging.handlers.TimedRotatingFileHandler(
                filename=LOGGING_FILE_NAME,
                when="midnight",
                interval=1,
                backupCount=7,
                encoding="utf-8",
            ),
            console_handler,
        ],
    )


def _load_config(argv: Optional[list[str]] = None) -> LocalConfig:
    """
    Parse the program arguments and load the local configuration, from
    `--config` or `CONFIG_FILE_PATH`.

    Returns:
        LocalConfig: Local configuration handle.
    """
    parser = argparse.ArgumentParser(description="DagmarNG attendance client")
    parser.add_argument(
        "--config",
        type=str,
        default=CONFIG_FILE_PATH,
        help=(
            "Path to local configuration file (.ini). "
            "A default file is created if not existing."
        ),
    )

    args = parser.parse_args(argv)

    config = LocalConfig(args.config)
    config.show_config()
    return config


def _load_backend(config: LocalConfig) -> Any:
    """
    Create the backend client and the session scheduler running it.

    Returns:
        SessionScheduler: Scheduler handle, owning the backend.
    """
    from core.http_backend import HttpBackend
    from model.session_scheduler import SessionScheduler

    backend_conf = config.section("backend")
    backend = HttpBackend(
        base_url=backend_conf["base_url"],
        api_prefix=backend_conf["api_prefix"],
        connect_timeout=backend_conf["connect_timeout"],
        read_timeout=backend_conf["read_timeout"],
    )
    logger.info(f"Using backend '{backend}'.")

    return SessionScheduler(backend, call_timeout=backend_conf["call_timeout"])


def _load_lifecycle(config: LocalConfig, scheduler: Any) -> Any:
    """
    Create the instance lifecycle viewmodel on its credential file.
    """
    from core.credential_store import JsonFileCredentialStore
    from viewmodel.lifecycle_viewmodel import InstanceLifecycleViewModel

    general_conf = config.section("general")
    lifecycle_conf = config.section("lifecycle")

    store = JsonFileCredentialStore(lifecycle_conf["credentials_file"])
    lifecycle = InstanceLifecycleViewModel(
        scheduler,
        store,
        client_type=general_conf["client_type"],
        poll_interval=lifecycle_conf["poll_interval"],
    )
    if not store.device_name:
        lifecycle.set_device_name(general_conf["device"] or socket.gethostname())
    return lifecycle


def _load_frontend(config: LocalConfig, scheduler: Any, lifecycle: Any) -> Any:
    """
    Create the headless frontend. The month session is created on
    authorization with the settings read from the backend.
    """
    from console_app import DagmarConsoleApp
    from viewmodel.attendance_viewmodel import AttendanceViewModel
    from viewmodel.lifecycle_viewmodel import InstanceRecord

    attendance_conf = config.section("attendance")

    def open_session(record: InstanceRecord) -> AttendanceViewModel:
        return AttendanceViewModel(
            scheduler,
            token=record.token or "",
            template=record.employment_template,
            afternoon_cutoff=record.afternoon_cutoff,
            display_name=record.display_name,
            default_cutoff=attendance_conf["default_cutoff"],
            edit_debounce=attendance_conf["edit_debounce"],
        )

    app = DagmarConsoleApp(
        lifecycle, open_session, tick=attendance_conf["session_tick"]
    )
    logger.info(f"'{app}' configured.")
    return app


def app_bootstrap(argv: Optional[list[str]] = None) -> Any:
    """
    Standard application bootstrap. Load the logging module, the program
    configuration, the backend services and finally the frontend.

    Returns:
        Any: An application handle that supports calling a blocking
            run() and a stop() on it.
    """
    scheduler = None
    lifecycle = None

    try:
        _configure_logging()
        logger.info("... DagmarNG Application Startup ...")

        config = _load_config(argv)
        if not config.section("debug")["debug"]:
            logging.getLogger().setLevel(logging.INFO)

        scheduler = _load_backend(config)
        lifecycle = _load_lifecycle(config, scheduler)
        return _load_frontend(config, scheduler, lifecycle)

    except Exception:
        # Try to close the modules that may have been created
        def try_close(module: Any):
            try:
                if module:
                    module.close()
            except Exception as ex:
                logger.warning(f"Exception closing '{module}': {ex}")

        try_close(lifecycle)
        try_close(scheduler)

        # Propagate exception to main
        raise
