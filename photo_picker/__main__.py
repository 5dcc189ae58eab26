import sys

from .gui import run

if __name__ == "__main__":
    sys.exit(run())
