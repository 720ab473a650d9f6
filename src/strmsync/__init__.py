"""strmsync core package.

The package reconciles a tree of ``.strm`` stream files against one or more
playlist catalogs:

- **catalog** / **parsers**: fetching sources and decoding JSON and M3U catalogs
- **group_filter**: include/exclude rules on catalog group labels
- **classifier**: TV episode vs. movie classification
- **destination_builder**: deterministic target paths for stream files
- **materializer**: directory creation and stream file writes
- **pruner**: bounded removal of stale stream files and empty directories
- **run_summary**: the end-of-run recap

The main entry point is the ``Processor`` class.
"""

from .processor import Processor
from .version import __version__

__all__ = [
    "__version__",
    "Processor",
]
