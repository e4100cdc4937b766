"""Package marker for the job tracker service.

Serves a single-file JSON job store over a small REST surface.
"""

__version__ = "1.0.0"
