"""
Tests for logging setup.
"""
import json
import logging
import logging.handlers

import pytest

from album_chain_importer.utils.logging_config import (
    LOG_BACKUP_COUNT,
    LOG_MAX_BYTES,
    JsonFormatter,
    setup_logging,
)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_creates_log_and_error_files(self, tmp_path, restore_root_logger):
        log_file = tmp_path / 'logs' / 'import.log'

        setup_logging(log_file=str(log_file), level='INFO')
        logging.getLogger('album_chain_importer.test').error('something failed')

        assert 'something failed' in log_file.read_text(encoding='utf-8')
        assert 'something failed' in (tmp_path / 'logs' / 'import_error.log').read_text(encoding='utf-8')

    def test_level_is_applied(self, tmp_path, restore_root_logger):
        log_file = tmp_path / 'import.log'

        setup_logging(log_file=str(log_file), level='warning')
        logging.getLogger('album_chain_importer.test').info('quiet')
        logging.getLogger('album_chain_importer.test').warning('heads up')

        assert logging.getLogger().level == logging.WARNING
        assert 'quiet' not in log_file.read_text(encoding='utf-8')
        assert 'heads up' in log_file.read_text(encoding='utf-8')
        assert 'heads up' not in (tmp_path / 'import_error.log').read_text(encoding='utf-8')

    def test_repeated_setup_does_not_duplicate_handlers(self, tmp_path, restore_root_logger):
        setup_logging(log_file=str(tmp_path / 'import.log'))
        setup_logging(log_file=str(tmp_path / 'import.log'))

        assert len(logging.getLogger().handlers) == 3

    def test_file_handlers_rotate(self, tmp_path, restore_root_logger):
        setup_logging(log_file=str(tmp_path / 'import.log'))

        rotating = [h for h in logging.getLogger().handlers
                    if isinstance(h, logging.handlers.RotatingFileHandler)]
        assert len(rotating) == 2
        for handler in rotating:
            assert handler.maxBytes == LOG_MAX_BYTES
            assert handler.backupCount == LOG_BACKUP_COUNT

    def test_json_output(self, tmp_path, restore_root_logger):
        log_file = tmp_path / 'import.log'

        setup_logging(log_file=str(log_file), enable_json=True)
        logging.getLogger('album_chain_importer.test').info('uploaded', extra={'item_key': 'A-p1'})

        line = json.loads(log_file.read_text(encoding='utf-8').splitlines()[-1])
        assert line['item_key'] == 'A-p1'


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_includes_context_fields(self):
        record = logging.LogRecord('importer', logging.INFO, __file__, 1, 'uploaded %s', ('p1',), None)
        record.job_id = 'job-1'
        record.item_key = 'A-p1'

        data = json.loads(JsonFormatter().format(record))

        assert data['message'] == 'uploaded p1'
        assert data['level'] == 'INFO'
        assert data['job_id'] == 'job-1'
        assert data['item_key'] == 'A-p1'
        assert 'album_id' not in data

    def test_includes_exception(self):
        try:
            raise ValueError('bad')
        except ValueError:
            import sys
            record = logging.LogRecord('importer', logging.ERROR, __file__, 1, 'oops', (), sys.exc_info())

        data = json.loads(JsonFormatter().format(record))

        assert 'ValueError: bad' in data['exception']
