"""Safe git branch cleanup.

Features:
- List branches with derived state (merged, stale, ahead/behind, upstream)
- Move branches to a trash ref namespace instead of deleting them
- Restore trashed branches
- Preview the recent history of live and trashed branches
- Sweep trash entries older than a retention window
- Batch operations with per-branch failure reporting
- Branch protection patterns
"""

__version__ = "0.3.0"
