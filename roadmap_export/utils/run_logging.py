"""
Per-export log files

``export_log_file`` copies every log record emitted during one export into
``{log_dir}/{export_id}.log``, each line tagged with the export id, so a
failed CLI export can be diagnosed after the fact.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(export_id)s - %(name)s - %(levelname)s - %(message)s"


class _ExportIdFilter(logging.Filter):
    def __init__(self, export_id: str):
        super().__init__()
        self.export_id = export_id

    def filter(self, record: logging.LogRecord) -> bool:
        record.export_id = self.export_id
        return True


@contextmanager
def export_log_file(export_id: str, log_dir: Union[str, Path]) -> Iterator[Path]:
    """
    Attach a file handler to the root logger for the duration of the block.

    Records reach the file at whatever level the root logger passes. The
    outcome (completed, or the exception type and message) is the last
    line of the file. The exception itself is re-raised unchanged.
    """
    log_path = Path(log_dir) / f"{export_id}.log"
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(log_path, mode="w", encoding="utf-8")
    handler.addFilter(_ExportIdFilter(export_id))
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    root = logging.getLogger()
    root.addHandler(handler)
    try:
        logger.info(f"Export log opened: {log_path}")
        yield log_path
        logger.info("Export completed")
    except Exception as e:
        logger.error(f"Export failed: {type(e).__name__}: {e}")
        raise
    finally:
        root.removeHandler(handler)
        handler.close()
