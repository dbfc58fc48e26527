"""Repository-side bookkeeping for syncing integration packages with Git.

Artifact change detection, ignore rules, folder comparison, transport
records and branch, tag and commit conventions.
"""

__version__ = "0.1.0"