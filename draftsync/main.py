"""Entry point: delegates to the CLI app (serve, sync, connect, ...)."""

from rich.traceback import install

from draftsync.cli import app
from draftsync.utils.tracing import shutdown_tracing


def main() -> None:
    try:
        install(show_locals=False, max_frames=5, word_wrap=True)
        app()
    finally:
        shutdown_tracing()


if __name__ == "__main__":
    main()
