import logging
import zipfile

import pytest

from geofence_journeys.utils.logger import ZipRotatingFileHandler, setup_logger


@pytest.fixture
def logger_name(request):
    name = f"geofence_journeys_test.{request.node.name}"
    yield name
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_setup_logger_creates_log_files(tmp_path, logger_name):
    logger = setup_logger(name=logger_name, level="debug", log_dir=tmp_path / "logs", log_to_console=False)

    logger.error("boom")

    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 2
    assert "boom" in (tmp_path / "logs" / "app.log").read_text()
    assert "boom" in (tmp_path / "logs" / "error.log").read_text()


def test_setup_logger_does_not_duplicate_handlers(tmp_path, logger_name):
    setup_logger(name=logger_name, log_dir=tmp_path)
    logger = setup_logger(name=logger_name, log_dir=tmp_path)

    assert len(logger.handlers) == 3


def test_rotated_file_is_zipped(tmp_path):
    handler = ZipRotatingFileHandler(str(tmp_path / "app.log"), delay=True)
    source = tmp_path / "app.log"
    source.write_text("old entries\n")
    dest = tmp_path / "app.log.2024-01-15"

    handler.rotator(str(source), str(dest))
    handler.close()

    assert not source.exists()
    assert not dest.exists()
    with zipfile.ZipFile(tmp_path / "app.log.2024-01-15.zip") as zipf:
        assert zipf.read("app.log.2024-01-15") == b"old entries\n"


def test_old_archives_are_selected_for_deletion(tmp_path):
    handler = ZipRotatingFileHandler(str(tmp_path / "app.log"), backupCount=2, delay=True)
    for day in ("2024-01-13", "2024-01-14", "2024-01-15"):
        (tmp_path / f"app.log.{day}.zip").write_bytes(b"")

    assert handler.getFilesToDelete() == [str(tmp_path / "app.log.2024-01-13.zip")]
    handler.close()
