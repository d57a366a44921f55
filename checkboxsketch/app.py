import argparse
import logging
import customtkinter as ctk

from .gui import CheckboxSketchApp
from .logging_config import setup_logging


def main(argv=None):
    parser = argparse.ArgumentParser(description="Turn images and videos into checkbox sketches")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Logging verbosity")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")
    args = parser.parse_args(argv)

    setup_logging(getattr(logging, args.log_level), args.log_file)

    ctk.set_appearance_mode("System")
    app = CheckboxSketchApp()
    app.mainloop()


if __name__ == "__main__":
    main()
