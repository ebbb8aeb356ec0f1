"""Root pytest configuration for all tests."""

import logging

# atlassian-python-api logs failed lookups at ERROR level; the unit tests
# trigger those on purpose.
logging.getLogger("atlassian").setLevel(logging.WARNING)
