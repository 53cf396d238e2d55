"""Main entry point for the club notification dispatcher."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import os
import signal
import sys
import threading
import time
from pathlib import Path
from typing import Optional, Tuple

from app.config.environment import EnvironmentConfig
from app.config.exceptions import ConfigurationError
from app.config.loader import load_config
from app.config.models import AppConfig
from app.dispatch import (
    DispatchAbortedError,
    EventCancellationNotifier,
    NotificationDelivery,
    NotificationDispatcher,
)
from app.logging import get_logger
from app.logging.config import configure_logging
from app.notifications.email_sender import EmailSender
from app.notifications.links import allowed_hosts, resolve_base_url
from app.notifications.models import PushConfigurationError
from app.notifications.push_client import PushClient
from app.notifications.smtp_client import SMTPClient
from app.persistence.database import close_database, init_database
from app.scheduler import SchedulerService

logger = get_logger(__name__, component="cli")


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load and prepare runtime configuration.

    Args:
        config_path: Path to configuration file, or None to search defaults
        log_level_override: Log level from CLI (takes precedence)

    Returns:
        Tuple of (AppConfig, EnvironmentConfig)

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    # Log level priority: CLI > Environment > Config
    if log_level_override:
        env_config.log_level = log_level_override
    elif env_config.log_level:
        pass
    elif app_config.logging and app_config.logging.level:
        env_config.log_level = app_config.logging.level
    else:
        env_config.log_level = "INFO"

    env_config.log_level = env_config.log_level.upper()
    return app_config, env_config


def build_push_client(app_config: AppConfig, env_config: EnvironmentConfig) -> Optional[PushClient]:
    """Create the push sender, or None when VAPID settings are incomplete."""
    if not env_config.push_configured:
        logger.warning(
            "VAPID settings incomplete; push delivery disabled",
            extra={"event": "push.unconfigured"},
        )
        return None

    try:
        return PushClient.from_config(
            env_config,
            app_config.push,
            timeout_seconds=app_config.advanced.push_timeout_seconds,
        )
    except PushConfigurationError as e:
        logger.warning(str(e), extra={"event": "push.unconfigured"})
        return None


def build_dispatcher(app_config: AppConfig, env_config: EnvironmentConfig) -> NotificationDispatcher:
    """Wire senders, delivery and dispatcher from loaded configuration."""
    email_sender = EmailSender(
        env_config,
        app_config.email,
        SMTPClient(timeout_seconds=app_config.advanced.smtp_timeout_seconds),
    )
    if not email_sender.is_configured():
        logger.warning(
            "SMTP settings incomplete; email fallback disabled",
            extra={"event": "email.unconfigured"},
        )

    delivery = NotificationDelivery(
        dispatch_config=app_config.dispatch,
        email_sender=email_sender,
        base_url=resolve_base_url(env_config),
        allowed_hosts=allowed_hosts(env_config),
        push_client=build_push_client(app_config, env_config),
        include_admins=app_config.audience.include_admins_in_event_audience,
    )
    return NotificationDispatcher(app_config.dispatch, delivery)


def build_cancellation_notifier(
    app_config: AppConfig, dispatcher: NotificationDispatcher
) -> EventCancellationNotifier:
    """Cancellation notices share the dispatcher's delivery and render times in the club zone."""
    return EventCancellationNotifier(dispatcher.delivery, tz=app_config.schedule.tzinfo())


def main() -> int:
    """
    Main entry point for the notification dispatcher.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    start_time = time.time()
    parser = argparse.ArgumentParser(
        description="Club notification dispatcher - delivers scheduled push and email notifications"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml or config/config.yaml)",
    )
    parser.add_argument(
        "--manual-run",
        action="store_true",
        help="Run a single dispatch immediately and exit",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )

    args = parser.parse_args()

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        log_format = app_config.logging.format if app_config.logging else "key-value"
        environment = os.environ.get("ENVIRONMENT", "local")
        configure_logging(level=env_config.log_level, format_type=log_format, environment=environment)

        logger.info(
            "Notification dispatcher starting",
            extra={
                "event": "service.starting",
                "config_path": str(args.config) if args.config else None,
                "log_level": env_config.log_level,
                "manual_run": args.manual_run,
            },
        )

        init_database(env_config.database_url, app_config.advanced.store_timeout_seconds)

        logger.info(
            "Configuration loaded",
            extra={
                "event": "config.loaded",
                "interval_seconds": app_config.dispatch.interval_seconds,
                "batch_size": app_config.dispatch.batch_size,
                "max_concurrent_sends": app_config.dispatch.max_concurrent_sends,
                "email_configured": env_config.email_configured,
                "push_configured": env_config.push_configured,
                "log_format": log_format,
            },
        )

        dispatcher = build_dispatcher(app_config, env_config)

        if args.manual_run:
            logger.info("Executing manual dispatch", extra={"event": "service.manual_run.starting"})
            try:
                result = dispatcher.run_once()
            except DispatchAbortedError as e:
                logger.error(
                    f"Manual dispatch aborted: {e}",
                    extra={"event": "service.manual_run.aborted"},
                )
                close_database()
                return 1

            logger.info(
                f"Manual dispatch completed: "
                f"{result.processed} processed, "
                f"{result.sent} pushed, "
                f"{result.failed} failed, "
                f"{result.email_sent} emailed",
                extra={
                    "event": "service.manual_run.completed",
                    "duration_seconds": result.total_duration_seconds,
                    "had_errors": result.had_errors,
                    **result.to_response(),
                },
            )

            close_database()

            logger.info(
                "Notification dispatcher stopped",
                extra={
                    "event": "service.stopping",
                    "uptime_seconds": round(time.time() - start_time, 2),
                },
            )
            return 1 if result.had_errors else 0

        shutdown_event = threading.Event()
        scheduler_service = SchedulerService(
            dispatcher=dispatcher,
            interval_seconds=app_config.dispatch.interval_seconds,
            shutdown_event=shutdown_event,
        )

        def signal_handler(signum, frame):
            logger.info(
                f"Received signal {signum}, shutting down",
                extra={"event": "service.signal_received", "signal": signum},
            )
            scheduler_service.shutdown(wait=False)
            close_database()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        scheduler_service.start()

        logger.info(
            "Scheduler started. Press Ctrl+C to stop",
            extra={"event": "service.daemon_mode.started"},
        )

        try:
            shutdown_event.wait()
        except KeyboardInterrupt:
            logger.info(
                "Keyboard interrupt received, shutting down",
                extra={"event": "service.keyboard_interrupt"},
            )
            scheduler_service.shutdown(wait=False)
            close_database()

        logger.info(
            "Notification dispatcher stopped",
            extra={
                "event": "service.stopping",
                "uptime_seconds": round(time.time() - start_time, 2),
            },
        )
        return 0

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        logger.error(
            f"Configuration error: {e}",
            extra={"event": "config.error", "error_type": "ConfigurationError"},
        )
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error during startup",
            extra={
                "event": "service.startup.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
            exc_info=True,
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
