"""Launcher - run this file to start gpoaudit without installing it"""

import sys
import os

# Detect packaged executable: PyInstaller sets sys.frozen, Nuitka sets __compiled__
_is_frozen = getattr(sys, 'frozen', False) or "__compiled__" in dir()

if _is_frozen:
    import tempfile
    import logging

    # Send logging output to a file; frozen builds may have no console.
    _log_path = os.path.join(tempfile.gettempdir(), 'gpoaudit.log')
    logging.basicConfig(
        filename=_log_path,
        level=logging.WARNING,
        format='%(asctime)s %(name)s %(levelname)s: %(message)s',
    )

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from gpoaudit.main import main

if __name__ == "__main__":
    sys.exit(main())
