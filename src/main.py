#!/usr/bin/env python3
"""
DagmarNG - Attendance client

Author: Bastian Cerf
Copyright (C) 2025 Mecacerf SA
License: AGPL-3.0 <https://www.gnu.org/licenses/>
"""

# Import general purpose libraries
import sys
import signal
import logging
from typing import Optional

# Internal libraries
import bootstrap

logger = logging.getLogger("main")


def main(argv: Optional[list[str]] = None) -> int:
    """
    Bootstrap and run the client until stopped by a signal.

    Returns:
        int: Process exit code, 1 after an unhandled exception.
    """
    app = None
    try:
        app = bootstrap.app_bootstrap(argv)

        # SIGINT and SIGTERM end the session loop
        for signum in (signal.SIGINT, signal.SIGTERM):
            signal.signal(signum, lambda *_: app.stop())

        app.run()
        logger.info("DagmarNG stopped.")
        return 0

    except Exception as exc:
        # Logging may not be configured if the bootstrap failed early
        if logging.getLogger().handlers:
            logger.exception("DagmarNG crashed.")
        else:
            print(f"DagmarNG crashed during startup: {exc!r}", file=sys.stderr)

        if app:
            try:
                app.stop()
            except Exception as ex:
                logger.warning(f"Exception stopping the application: {ex}")
        return 1


# Program entry
if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
