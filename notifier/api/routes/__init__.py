from . import diagnostics, jobs

__all__ = ["diagnostics", "jobs"]
