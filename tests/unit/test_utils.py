"""
Unit tests for notifications and resource limits (xtracycle/utils/).
"""

import logging
import resource
from unittest.mock import MagicMock, patch

import pytest

from xtracycle.cycle.errors import ExitCode, ResourceLimitError
from xtracycle.utils.limits import set_open_files_limit
from xtracycle.utils.notify import Notifier, NOTIFY_LOGGER_NAME


class TestNotifier:

    def test_severities_map_to_log_levels(self):
        logger = MagicMock()
        notifier = Notifier(logger=logger)

        notifier.info('Innobackup ok')
        notifier.warn('Nothing to purge yet.')
        notifier.err('Innobackup failed')

        assert [c[0] for c in logger.log.call_args_list] == [
            (logging.INFO, 'Innobackup ok'),
            (logging.WARNING, 'Nothing to purge yet.'),
            (logging.ERROR, 'Innobackup failed'),
        ]
        assert [m.severity for m in notifier.messages] == ['info', 'warn', 'err']

    def test_unknown_severity(self):
        with pytest.raises(ValueError):
            Notifier(logger=MagicMock()).notify('crit', 'disk on fire')

    def test_default_logger(self, caplog):
        with caplog.at_level(logging.INFO, logger=NOTIFY_LOGGER_NAME):
            Notifier().warn('Failed to delete /backups/20240104_full')

        assert caplog.records[-1].name == NOTIFY_LOGGER_NAME
        assert caplog.records[-1].levelno == logging.WARNING


class TestOpenFilesLimit:

    @patch('xtracycle.utils.limits.resource.setrlimit')
    def test_sets_soft_and_hard_limit(self, mock_setrlimit):
        set_open_files_limit(4096)

        mock_setrlimit.assert_called_once_with(resource.RLIMIT_NOFILE, (4096, 4096))

    @pytest.mark.parametrize("error", [ValueError('not allowed'), OSError('operation not permitted')])
    def test_failure_is_reported(self, error):
        with patch('xtracycle.utils.limits.resource.setrlimit', side_effect=error):
            with pytest.raises(ResourceLimitError) as exc_info:
                set_open_files_limit(1048576)

        assert exc_info.value.exit_code == ExitCode.LIMIT_FAILED
