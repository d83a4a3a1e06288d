"""m3uhandler core package.

The package is organized into focused modules:

- **parser**: ``#EXTINF`` line pairing and attribute extraction
- **classifier**: category resolution and relative ``.strm`` path building
- **writer**: idempotent marker file writes
- **reconciler**: delete-missing sweep of the category roots
- **ignored_log**: NDJSON log of rejected entries
- **converter**: the run orchestrator tying the above together
- **fetcher** / **daemon**: HTTP download and the periodic driver
- **run_summary** / **summary_table**: run recaps for logs and the console

The main entry point for a single conversion is ``convert`` (or the
``Converter`` class when several runs share one output root).
"""

from .converter import Converter, convert
from .errors import InputNotFoundError
from .models import MovieLayout, RunOptions, RunSummary
from .version import __version__

__all__ = [
    "__version__",
    "Converter",
    "InputNotFoundError",
    "MovieLayout",
    "RunOptions",
    "RunSummary",
    "convert",
]
