import logging
import os
import sys

from PyQt6 import QtWidgets

from .ui.main_window import APP_TITLE, MainWindow


def configure_logging() -> None:
    level = logging.DEBUG if os.getenv("LIVEPAGE_DEBUG") == "1" else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def main() -> int:
    configure_logging()
    app = QtWidgets.QApplication(sys.argv)
    app.setApplicationName(APP_TITLE)
    win = MainWindow()
    win.show()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
