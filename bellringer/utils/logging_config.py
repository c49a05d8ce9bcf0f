"""
Centralized logging configuration for the bell timetable system.

This module provides standardized logging with timestamps, function names,
and appropriate log levels for all system components.
"""

import logging
import logging.handlers
import os
import sys
from datetime import date
from pathlib import Path
from typing import Optional


class ScheduleSystemLogger:
    """
    Centralized logger for the bell timetable system.
    Provides consistent formatting and handling across all modules.
    """

    _loggers = {}
    _configured = False

    @classmethod
    def setup_logging(
        cls,
        log_level: Optional[str] = None,
        log_file: Optional[str] = None,
        console_output: bool = True
    ) -> None:
        """
        Configure the logging system for the entire application.

        Args:
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
                Falls back to the LOG_LEVEL environment variable, then INFO.
            log_file: Optional log file path. Falls back to LOG_FILE; when
                neither is set no file handler is installed.
            console_output: Whether to output logs to console
        """
        if cls._configured:
            return

        log_level = (log_level or os.getenv("LOG_LEVEL") or "INFO").upper()
        log_file = log_file or os.getenv("LOG_FILE")

        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, log_level))

        formatter = logging.Formatter(
            fmt='%(asctime)s | %(levelname)-8s | %(name)-25s | %(funcName)-20s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        if console_output:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(formatter)
            console_handler.setLevel(getattr(logging, log_level))
            root_logger.addHandler(console_handler)

        if log_file:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                filename=log_file,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5
            )
            file_handler.setFormatter(formatter)
            file_handler.setLevel(logging.DEBUG)  # File gets all levels
            root_logger.addHandler(file_handler)

        cls._configured = True

        logger = cls.get_logger("logging_config")
        logger.info(f"Logging system configured - Level: {log_level}, File: {log_file}")

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """
        Get a logger for a specific module or component.

        Args:
            name: Logger name (typically component name)

        Returns:
            Logger instance
        """
        if name not in cls._loggers:
            cls._loggers[name] = logging.getLogger(name)
        return cls._loggers[name]


def get_resolver_logger() -> logging.Logger:
    """Get logger for schedule resolution."""
    return ScheduleSystemLogger.get_logger("schedule_resolver")


def get_projector_logger() -> logging.Logger:
    """Get logger for timeline projection."""
    return ScheduleSystemLogger.get_logger("timeline_projector")


def get_bell_logger() -> logging.Logger:
    """Get logger for the bell trigger loop."""
    return ScheduleSystemLogger.get_logger("bell_trigger")


def get_catalog_logger() -> logging.Logger:
    """Get logger for catalog and SQL operations."""
    return ScheduleSystemLogger.get_logger("schedule_catalog")


def get_mqtt_logger() -> logging.Logger:
    """Get logger specifically for MQTT operations."""
    return ScheduleSystemLogger.get_logger("mqtt_functions")


def get_main_logger() -> logging.Logger:
    """Get logger for main application."""
    return ScheduleSystemLogger.get_logger("main_app")


def log_resolution(
    logger: logging.Logger,
    outcome: str,
    target_date: date,
    schedule_id: Optional[int] = None,
    details: Optional[str] = None
) -> None:
    """
    Standardized logging for schedule resolution outcomes.

    Args:
        logger: Logger instance to use
        outcome: Outcome name (resolved, no_school_day, not_found, ...)
        target_date: Date that was resolved
        schedule_id: Optional id of the authoritative schedule
        details: Additional details
    """
    message_parts = [f"RESOLUTION_{outcome.upper()}", f"Date: {target_date.isoformat()}"]

    if schedule_id is not None:
        message_parts.append(f"Schedule: {schedule_id}")

    if details:
        message_parts.append(f"Details: {details}")

    logger.info(" | ".join(message_parts))


def log_call_fired(
    logger: logging.Logger,
    call_type: str,
    call_time: str,
    reference: str,
    success: bool = True,
    details: Optional[str] = None
) -> None:
    """
    Standardized logging for bell call triggers.

    Args:
        logger: Logger instance to use
        call_type: LESSON_START, BREAK_START or PRELIMINARY_CALL
        call_time: Scheduled time of the call
        reference: Lesson/break reference of the call
        success: Whether the sink accepted the call
        details: Additional details
    """
    message_parts = [f"BELL_{call_type.upper()}", f"Time: {call_time}", f"Ref: {reference}"]

    if details:
        message_parts.append(f"Details: {details}")

    message = " | ".join(message_parts)

    if success:
        logger.info(message)
    else:
        logger.error(message)


def log_database_operation(
    logger: logging.Logger,
    operation: str,
    table: str,
    success: bool,
    details: Optional[str] = None,
    error: Optional[Exception] = None
) -> None:
    """
    Standardized logging for database operations.

    Args:
        logger: Logger instance to use
        operation: Database operation (INSERT, UPDATE, DELETE, SELECT)
        table: Database table name
        success: Whether operation was successful
        details: Additional details
        error: Exception if operation failed
    """
    message_parts = [f"DB_{operation.upper()}", f"Table: {table}"]

    if details:
        message_parts.append(f"Details: {details}")

    message = " | ".join(message_parts)

    if success:
        logger.info(message)
    elif error:
        logger.error(f"{message} | Error: {error}")
    else:
        logger.error(message)
