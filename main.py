import argparse
import asyncio
import logging

from vaxalert.config import load_settings
from vaxalert.worker import run_check_once, run_forever, send_status_message


def _setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )


def _notify_status(settings, text: str, what: str) -> None:
    try:
        asyncio.run(send_status_message(settings, text=text))
    except Exception:
        logging.getLogger(__name__).warning("Failed to send Telegram %s message", what, exc_info=True)


def main() -> int:
    parser = argparse.ArgumentParser(description="vaxalert: vaccination slot watcher")
    parser.add_argument("--once", action="store_true", help="Run single check per district/age tier and exit")
    parser.add_argument(
        "--log-level",
        default="INFO",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    args = parser.parse_args()

    _setup_logging(args.log_level)

    try:
        settings = load_settings()
    except RuntimeError as e:
        logging.getLogger(__name__).error("Invalid configuration: %s", e)
        return 1

    # Startup message (best-effort)
    _notify_status(
        settings,
        (
            "vaxalert started.\n"
            f"Mode: {'once' if args.once else 'forever'}\n"
            f"districts={','.join(map(str, settings.district_ids))} "
            f"ages={','.join(map(str, settings.age_tiers))} "
            f"interval={settings.poll_interval_seconds}s"
        ),
        "startup",
    )

    try:
        if args.once:
            asyncio.run(run_check_once(settings))
            return 0

        asyncio.run(run_forever(settings))
        return 0

    except Exception as e:
        _notify_status(settings, f"vaxalert crashed.\nReason: {type(e).__name__}: {e}", "crash")
        raise

    finally:
        _notify_status(settings, "vaxalert stopped (process exit).", "shutdown")


if __name__ == "__main__":
    raise SystemExit(main())
