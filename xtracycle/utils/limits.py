"""
Open files limit handling (the equivalent of ``ulimit -n``).

Backing up servers with many tables can exceed the default open files
limit, so the cycle raises it before xtrabackup starts.
"""

import logging
import resource

from xtracycle.cycle.errors import ResourceLimitError

logger = logging.getLogger(__name__)


def set_open_files_limit(limit: int):
    """
    Set both soft and hard RLIMIT_NOFILE to ``limit``.

    Raises:
        ResourceLimitError: If the limit cannot be applied
    """
    logger.info(f"Trying to set open files limit to {limit}")

    try:
        resource.setrlimit(resource.RLIMIT_NOFILE, (limit, limit))
    except (ValueError, OSError) as e:
        raise ResourceLimitError(f"Failed to set open files limit to {limit}: {e}")

    logger.info("Open files limit set")
