"""jot: personal notes and journal backends.

Makes local markdown notes and remote services (calendars, cloud notes)
look like one uniform, query-able collection of documents.
"""

__version__ = "0.3.0"
