"""
Excel File Manager with Concurrency Control

Thread-safe append-only Excel log of processed voice commands, written
by Celery workers under a file lock.

Version: 4.0.0
"""

from datetime import datetime
from typing import Any
from pathlib import Path

import pandas as pd
from filelock import FileLock, Timeout

from kitchen_voice.core.config import get_settings
import logging

settings = get_settings()
logger = logging.getLogger(__name__)


class ExcelManager:
    """Thread-safe Excel file manager."""

    LOCK_TIMEOUT = settings.excel_lock_timeout

    COMMAND_COLUMNS = [
        "command_id",
        "date_time",
        "transcript",
        "normalized",
        "intent",
        "confidence",
        "analysis_source",
        "success",
        "response",
        "order_number",
        "previous_status",
        "new_status",
        "exported_at",
    ]

    @classmethod
    def data_dir(cls) -> Path:
        return Path(get_settings().data_directory)

    @classmethod
    def commands_file(cls) -> Path:
        return cls.data_dir() / get_settings().command_log_filename

    @classmethod
    def commands_lock(cls) -> Path:
        return cls.data_dir() / f"{get_settings().command_log_filename}.lock"

    @classmethod
    def _ensure_data_dir(cls) -> None:
        """Create data directory if needed."""
        data_dir = cls.data_dir()
        if not data_dir.exists():
            data_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {data_dir}")

    @classmethod
    def _load_or_create_df(cls, file_path: Path, columns: list) -> pd.DataFrame:
        """Load existing file or create new DataFrame."""
        if file_path.exists():
            try:
                return pd.read_excel(file_path, engine="openpyxl")
            except Exception as e:
                logger.warning(f"Error reading {file_path}: {e}")
                return pd.DataFrame(columns=columns)
        return pd.DataFrame(columns=columns)

    @classmethod
    def export_command(cls, command_data: dict[str, Any]) -> dict[str, Any]:
        """Append one processed command to the Excel log with file locking."""
        cls._ensure_data_dir()

        command_id = command_data.get("command_id", "unknown")
        result = {
            "success": False,
            "message": "",
            "command_id": command_id,
            "exported_at": None,
        }

        try:
            lock = FileLock(str(cls.commands_lock()), timeout=cls.LOCK_TIMEOUT)

            with lock:
                logger.debug(f"Lock acquired for command {command_id}")

                log_file = cls.commands_file()
                df = cls._load_or_create_df(log_file, cls.COMMAND_COLUMNS)

                export_time = datetime.now().isoformat()
                new_row = {column: command_data.get(column) for column in cls.COMMAND_COLUMNS}
                new_row["command_id"] = command_id
                new_row["date_time"] = command_data.get("date_time") or export_time
                new_row["exported_at"] = export_time

                new_df = pd.DataFrame([new_row], columns=cls.COMMAND_COLUMNS)
                df = new_df if df.empty else pd.concat([df, new_df], ignore_index=True)
                df.to_excel(str(log_file), index=False, engine="openpyxl")

                logger.info(f"Command {command_id} exported to Excel")

                result["success"] = True
                result["message"] = f"Command {command_id} exported"
                result["exported_at"] = export_time

            logger.debug(f"Lock released for command {command_id}")

        except Timeout:
            result["message"] = f"Lock timeout ({cls.LOCK_TIMEOUT}s)"
            logger.error(f"Lock timeout for command {command_id}")

        except Exception as e:
            result["message"] = str(e)
            logger.exception(f"Error exporting command {command_id}")

        return result

    @classmethod
    def get_all_commands(cls) -> list[dict[str, Any]]:
        """Get all logged commands from Excel."""
        cls._ensure_data_dir()

        log_file = cls.commands_file()
        if not log_file.exists():
            return []

        try:
            df = pd.read_excel(log_file, engine="openpyxl")
            return df.to_dict("records")
        except Exception as e:
            logger.error(f"Error reading command log: {e}")
            return []

    @classmethod
    def clear_all(cls) -> bool:
        """Delete the command log and its lock file."""
        try:
            for f in [cls.commands_file(), cls.commands_lock()]:
                if f.exists():
                    f.unlink()
            logger.info("Command log cleared")
            return True
        except OSError as e:
            logger.error(f"Error clearing files: {e}")
            return False
