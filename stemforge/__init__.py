"""stemforge: resolve built releases into stemcell-compiled releases.

Classifies the releases in a lock file, fetches pre-compiled releases from
publishable sources, compiles the rest in an ephemeral deployment on the
remote platform, verifies and uploads the results, and rewrites the lock
file once.
"""

__version__ = "0.1.0"

from stemforge.core.resolver import ResolutionReport, Resolver
from stemforge.core.classifier import find_build_candidates

__all__ = ["Resolver", "ResolutionReport", "find_build_candidates", "__version__"]
