"""Session job orchestration: admission, dispatch, reaping and completion suppression.

The remote queue offers session ids, possibly repeatedly and overlapping
between polls. The worker keeps three disjoint local collections (queued,
in flight, recently completed) so that a session is processed at most once per
retention window, and it never waits on a running pipeline to admit new work.
"""
