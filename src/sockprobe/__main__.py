"""sockprobe command line entry point."""

from sockprobe.cli import app

if __name__ == "__main__":
    app()
