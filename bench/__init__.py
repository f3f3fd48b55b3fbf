"""
bench: content-hash based directory synchronization.

A tree is described by a manifest of relative names and content digests.
Fetching compares the local manifest with a reference manifest and
downloads only the files whose name or content differ.
"""

__app_name__ = "bench"
__version__ = "0.2.1"
