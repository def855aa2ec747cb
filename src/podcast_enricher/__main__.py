"""Entry point for ``python -m podcast_enricher``."""

from .cli import main

if __name__ == "__main__":  # pragma: no cover - script entry
    raise SystemExit(main())
