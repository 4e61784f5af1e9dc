"""
learnsync - offline-first spaced repetition with a remote store of record.

Subpackages:
- scoring: pure scoring and answer matching
- replica: local SQL replica of questions and attempts
- remote: remote store contract and MongoDB implementation
- selection: revision and game selection
- sync: pull/push coordination and the background sync task
- progress: learning progress over the local replica
"""

__version__ = "0.1.0"
