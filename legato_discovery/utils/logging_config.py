"""
Legato Discovery Logging Configuration

Structured logging for the discovery engine and its HTTP adapter:
- structlog on top of stdlib logging
- Rotating log files (everything, and errors only)
- Console output for development
- Quieter levels for noisy third-party loggers
- Performance and error helpers used by the orchestrator
"""

import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars


class LegatoLogger:
    """
    Centralized logging configuration for Legato Discovery.

    Provides structured logging with:
    - File rotation by size
    - Console output for development
    - Component-specific log levels
    """

    def __init__(
        self,
        log_dir: Optional[str] = "logs",
        log_level: str = "INFO",
        enable_console: bool = True,
        max_file_size: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5
    ):
        """
        Initialize the logging system.

        Args:
            log_dir: Directory to store log files (None disables file logging)
            log_level: Default log level
            enable_console: Whether to enable console logging
            max_file_size: Maximum size per log file before rotation
            backup_count: Number of backup files to keep
        """
        self.log_dir = Path(log_dir) if log_dir else None
        self.log_level = getattr(logging, log_level.upper())
        self.enable_console = enable_console
        self.max_file_size = max_file_size
        self.backup_count = backup_count

        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)

        self.component_levels = {
            "api": logging.INFO,
            "external": logging.WARNING,
        }

        self._setup_logging()

    def _setup_logging(self):
        """Configure the complete logging system."""
        logging.getLogger().handlers.clear()

        self._configure_structlog()

        if self.log_dir is not None:
            self._setup_file_handlers()

        if self.enable_console:
            self._setup_console_handler()

        self._configure_component_loggers()

        logging.getLogger().setLevel(self.log_level)

    def _configure_structlog(self):
        """Configure structlog for structured logging."""
        shared_processors = [
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
        ]

        structlog.configure(
            processors=shared_processors + [
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

    def _setup_file_handlers(self):
        """Setup rotating file handlers for the main and error logs."""
        main_handler = self._create_rotating_file_handler(
            filename="legato_discovery.log",
            level=self.log_level
        )
        error_handler = self._create_rotating_file_handler(
            filename="errors.log",
            level=logging.ERROR
        )

        root_logger = logging.getLogger()
        for handler in [main_handler, error_handler]:
            root_logger.addHandler(handler)

    def _create_rotating_file_handler(
        self,
        filename: str,
        level: int
    ) -> logging.handlers.RotatingFileHandler:
        """Create a rotating file handler with JSON formatting."""
        handler = logging.handlers.RotatingFileHandler(
            filename=self.log_dir / filename,
            maxBytes=self.max_file_size,
            backupCount=self.backup_count,
            encoding="utf-8"
        )
        handler.setLevel(level)
        handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.processors.JSONRenderer(),
            )
        )
        return handler

    def _setup_console_handler(self):
        """Setup console handler for development."""
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(self.log_level)
        console_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.dev.ConsoleRenderer(colors=True),
            )
        )
        logging.getLogger().addHandler(console_handler)

    def _configure_component_loggers(self):
        """Quiet third-party loggers unless we are debugging."""
        external_modules = ["httpx", "uvicorn.access", "asyncio"]
        level = logging.WARNING if self.log_level != logging.DEBUG else logging.INFO
        for ext_module in external_modules:
            logging.getLogger(ext_module).setLevel(level)

        if self.log_level != logging.DEBUG:
            logging.getLogger("legato_discovery.api").setLevel(self.component_levels["api"])

    def get_logger(self, name: str) -> structlog.BoundLogger:
        """Get a structured logger for a specific component."""
        return structlog.get_logger(name)

    def set_request_context(self, request_id: str, user_id: Optional[str] = None):
        """Set context for the current request."""
        clear_contextvars()
        bind_contextvars(
            request_id=request_id,
            user_id=user_id,
            timestamp=datetime.now(timezone.utc).isoformat()
        )

    def log_performance(self, operation: str, duration: float, **kwargs):
        """Log performance metrics."""
        self.get_logger("performance").info(
            "performance_metric",
            operation=operation,
            duration_seconds=duration,
            **kwargs
        )

    def log_api_request(
        self,
        method: str,
        url: str,
        status_code: int,
        duration: float,
        **kwargs
    ):
        """Log API request details."""
        self.get_logger("legato_discovery.api").info(
            "api_request",
            method=method,
            url=url,
            status_code=status_code,
            duration_seconds=duration,
            **kwargs
        )

    def log_error(self, error: Exception, context: Dict[str, Any], **kwargs):
        """Log errors with full context."""
        self.get_logger("errors").error(
            "error_occurred",
            error_type=type(error).__name__,
            error_message=str(error),
            context=context,
            **kwargs
        )


# Global logger instance
_logger_instance: Optional[LegatoLogger] = None


def setup_logging(
    log_dir: Optional[str] = "logs",
    log_level: str = "INFO",
    enable_console: bool = True,
    **kwargs
) -> LegatoLogger:
    """
    Setup the global logging configuration.

    Args:
        log_dir: Directory to store log files (None disables file logging)
        log_level: Default log level
        enable_console: Whether to enable console logging
        **kwargs: Additional arguments for LegatoLogger

    Returns:
        Configured logger instance
    """
    global _logger_instance

    _logger_instance = LegatoLogger(
        log_dir=log_dir,
        log_level=log_level,
        enable_console=enable_console,
        **kwargs
    )

    return _logger_instance


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a logger for a specific component.

    Raises:
        RuntimeError: If logging hasn't been setup
    """
    if _logger_instance is None:
        raise RuntimeError("Logging not setup. Call setup_logging() first.")

    return _logger_instance.get_logger(name)


def log_performance(operation: str, duration: float, **kwargs):
    """Log performance metrics."""
    if _logger_instance:
        _logger_instance.log_performance(operation, duration, **kwargs)


def log_api_request(method: str, url: str, status_code: int, duration: float, **kwargs):
    """Log API request details."""
    if _logger_instance:
        _logger_instance.log_api_request(method, url, status_code, duration, **kwargs)


def log_error(error: Exception, context: Dict[str, Any], **kwargs):
    """Log errors with full context."""
    if _logger_instance:
        _logger_instance.log_error(error, context, **kwargs)


def set_request_context(request_id: str, user_id: Optional[str] = None):
    """Set context for the current request."""
    if _logger_instance:
        _logger_instance.set_request_context(request_id, user_id)
