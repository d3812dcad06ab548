#!/usr/bin/env python3
"""
Live Capture Probe
==================

Standalone script to exercise the capture pipeline against a live stream.

This script:
    1. Builds a CameraService from config (with CLI overrides)
    2. Runs the background scheduler for a configurable duration
    3. Logs buffer, health and tick stats every report interval
    4. Reports a final summary

Prerequisites:
    - ffmpeg on PATH
    - pip install -e .

Usage:
    python scripts/capture_probe.py --duration 300
    python scripts/capture_probe.py --interval 10 --classifier vlm
    python scripts/capture_probe.py --url https://example.org/live/playlist.m3u8
"""

import argparse
import asyncio
import logging
import time

from bridgewatch.config import load_config
from bridgewatch.service import CameraService


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


def _log_progress(service: CameraService, elapsed: float) -> None:
    metrics = service.get_metrics()
    report = service.get_health()

    logger.info("-" * 40)
    logger.info(f"Progress Report (elapsed: {elapsed:.0f}s)")
    logger.info(f"  Ticks: {metrics['scheduler']['tick_count']}")
    logger.info(f"  Reasons: {metrics['scheduler']['reasons']}")
    logger.info(f"  Captures ok/failed: "
                f"{metrics['capture']['successes']}/{metrics['capture']['failures']}")
    logger.info(f"  Buffer: {metrics['store']['size']}/{metrics['store']['capacity']} "
                f"{metrics['store']['by_category']}")
    logger.info(f"  Camera: {report.state.value} - {report.advisory}")


async def run_probe(
    config_path: str,
    url: str,
    duration: int,
    interval: float,
    classifier: str,
    report_interval: int,
) -> dict:
    """
    Run the probe.

    Args:
        config_path: Optional config.yaml path
        url: Stream URL override (empty = config value)
        duration: Probe duration in seconds
        interval: Tick interval override in seconds
        classifier: Classifier backend override
        report_interval: Seconds between progress reports

    Returns:
        Final metrics dict
    """
    settings = load_config(config_path)
    if url:
        settings.stream.url = url
    settings.scheduler.tick_interval_seconds = interval
    settings.classifier.backend = classifier

    logger.info("=" * 60)
    logger.info("Live Capture Probe")
    logger.info("=" * 60)
    logger.info(f"Stream URL: {settings.stream.url}")
    logger.info(f"Duration: {duration} seconds")
    logger.info(f"Tick interval: {interval} seconds")
    logger.info(f"Classifier: {classifier}")
    logger.info("=" * 60)

    service = CameraService.from_settings(settings)
    await service.start()

    start_time = time.time()
    last_report_time = start_time

    try:
        while time.time() - start_time < duration:
            if time.time() - last_report_time >= report_interval:
                _log_progress(service, time.time() - start_time)
                last_report_time = time.time()
            await asyncio.sleep(0.5)
        logger.info(f"Probe duration ({duration}s) reached")
    except KeyboardInterrupt:
        logger.info("Probe interrupted by user")
    finally:
        await service.stop()

    total_time = time.time() - start_time
    metrics = service.get_metrics()
    report = service.get_health()
    selected = service.get_frames_for_analysis()

    logger.info("=" * 60)
    logger.info("FINAL SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Total runtime: {total_time:.1f} seconds")
    logger.info(f"Ticks: {metrics['scheduler']['tick_count']}")
    logger.info(f"Reasons: {metrics['scheduler']['reasons']}")
    logger.info(f"Capture timeouts: {metrics['capture']['timeouts']}")
    logger.info(f"Classifier errors: {metrics['classifier']['errors']}")
    logger.info(f"Buffered by view: {metrics['store']['by_category']}")
    logger.info(f"Frames for analysis: {[repr(f) for f in selected]}")
    logger.info(f"Camera health: {report.state.value} - {report.advisory}")
    logger.info("=" * 60)

    if metrics["capture"]["successes"] > 0:
        logger.info("PROBE PASSED - frames captured")
    else:
        logger.error("PROBE FAILED - no frames captured")

    return {
        "duration": total_time,
        "ticks": metrics["scheduler"]["tick_count"],
        "captures": metrics["capture"]["successes"],
        "failures": metrics["capture"]["failures"],
        "buffered": metrics["store"]["size"],
        "health": report.state.value,
    }


def main():
    parser = argparse.ArgumentParser(description="Live capture probe for BridgeWatch")
    parser.add_argument("--config", type=str, default=None, help="Path to config.yaml")
    parser.add_argument("--url", type=str, default="", help="Stream URL override")
    parser.add_argument(
        "--duration",
        type=int,
        default=300,
        help="Probe duration in seconds (default: 300)",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=20.0,
        help="Seconds between ticks (default: 20)",
    )
    parser.add_argument(
        "--classifier",
        type=str,
        default="mock",
        choices=["mock", "vision", "vlm"],
        help="Classifier backend (default: mock)",
    )
    parser.add_argument(
        "--report-interval",
        type=int,
        default=60,
        help="Seconds between progress reports (default: 60)",
    )
    args = parser.parse_args()

    asyncio.run(
        run_probe(
            config_path=args.config,
            url=args.url,
            duration=args.duration,
            interval=args.interval,
            classifier=args.classifier,
            report_interval=args.report_interval,
        )
    )


if __name__ == "__main__":
    main()
