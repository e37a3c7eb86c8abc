import logging

import pytest

from core.correlation import CorrelationFilter, with_correlation
from ride_logging import PIIFilter, setup_logging


@pytest.fixture
def root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.unit
class TestSetupLogging:
    def test_installs_single_filtered_handler(self, root_logger):
        setup_logging(level="DEBUG")

        assert root_logger.level == logging.DEBUG
        assert len(root_logger.handlers) == 1
        filter_types = {type(f) for f in root_logger.handlers[0].filters}
        assert filter_types == {CorrelationFilter, PIIFilter}

    def test_json_format_masks_codes(self, root_logger, capsys):
        setup_logging(level="INFO", json_output=True, environment="test")

        with with_correlation("RIDE-7"):
            logging.getLogger("rides.test").info("start_code=4821 issued")

        out = capsys.readouterr().out
        assert '"correlation_id": "RIDE-7"' in out
        assert '"environment": "test"' in out
        assert "start_code=[CODE]" in out
        assert "4821" not in out
