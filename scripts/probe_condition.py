#!/usr/bin/env python3
"""
Vicinity Condition Probe
========================

Standalone script that ticks the vicinity condition against a live stream.

This script:
    1. Subscribes to the frame stream
    2. Ticks the condition at a fixed interval for a configurable duration
    3. Logs every evaluation
    4. Reports a final summary

Prerequisites:
    - A frame stream must be running at the configured URL
    - The selected classifier backend must be reachable
    - Install the package: pip install -e .

Usage:
    python scripts/probe_condition.py --duration 60
    python scripts/probe_condition.py --url ws://robot:8000/ws/frames --backend llm
"""

import argparse
import logging
import os
import sys
import time
from collections import Counter

from vicinity_condition.config import ConditionConfig, load_config
from vicinity_condition.condition import create_vicinity_condition


logger = logging.getLogger("probe_condition")


def run_probe(settings, duration: int, interval: float) -> dict:
    """
    Tick the condition repeatedly and collect outcomes.

    Args:
        settings: Loaded settings (condition options already overridden)
        duration: Probe duration in seconds
        interval: Seconds between ticks

    Returns:
        Summary dict
    """
    logger.info("=" * 60)
    logger.info("Vicinity Condition Probe")
    logger.info("=" * 60)
    logger.info(f"Frame source: {settings.condition.frame_source}")
    logger.info(f"Response timeout: {settings.condition.response_timeout_ms} ms")
    logger.info(f"Classifier backend: {settings.classifier.backend}")
    logger.info(f"Duration: {duration} seconds, interval: {interval} seconds")
    logger.info("=" * 60)

    statuses: Counter = Counter()
    failures: Counter = Counter()
    latencies = []

    start_time = time.time()

    with create_vicinity_condition(settings) as condition:
        try:
            while time.time() - start_time < duration:
                evaluation = condition.evaluate()

                statuses[evaluation.status.value] += 1
                if evaluation.failure is not None:
                    failures[evaluation.failure.value] += 1
                latencies.append(evaluation.latency_ms)

                time.sleep(max(0.0, interval - evaluation.latency_ms / 1000.0))

        except KeyboardInterrupt:
            logger.info("Probe interrupted by user")

        metrics = condition.get_metrics()

    total_time = time.time() - start_time
    max_latency = max(latencies) if latencies else 0.0

    logger.info("=" * 60)
    logger.info("FINAL SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Total runtime: {total_time:.1f} seconds")
    logger.info(f"Evaluations: {sum(statuses.values())}")
    logger.info(f"Statuses: {dict(statuses)}")
    logger.info(f"Failures: {dict(failures)}")
    logger.info(f"Max latency: {max_latency:.0f} ms")
    logger.info(f"Frames published: {metrics['subscription']['frames_published']}")
    logger.info(f"Decode errors: {metrics['subscription']['decode_errors']}")
    logger.info("=" * 60)

    return {
        "duration": total_time,
        "statuses": dict(statuses),
        "failures": dict(failures),
        "max_latency_ms": max_latency,
        "frames_published": metrics["subscription"]["frames_published"],
    }


def main():
    parser = argparse.ArgumentParser(
        description="Tick the vicinity condition against a live frame stream"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config.yaml (default: search common locations)",
    )
    parser.add_argument(
        "--url",
        type=str,
        default=os.environ.get("VICINITY_FRAME_SOURCE"),
        help="WebSocket URL of the frame stream (overrides config)",
    )
    parser.add_argument(
        "--timeout-ms",
        type=int,
        default=None,
        help="Classifier response timeout in ms (overrides config)",
    )
    parser.add_argument(
        "--backend",
        choices=["mock", "llm", "google_vision"],
        default=None,
        help="Classifier backend (overrides config)",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=60,
        help="Probe duration in seconds (default: 60)",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=1.0,
        help="Seconds between ticks (default: 1.0)",
    )

    args = parser.parse_args()

    settings = load_config(args.config)

    condition_config = ConditionConfig(
        frame_source=args.url or settings.condition.frame_source,
        response_timeout_ms=args.timeout_ms or settings.condition.response_timeout_ms,
    )
    updates = {"condition": condition_config}
    if args.backend:
        updates["classifier"] = settings.classifier.model_copy(update={"backend": args.backend})
    settings = settings.model_copy(update=updates)

    result = run_probe(settings, duration=args.duration, interval=args.interval)

    # Exit non-zero if no frame was ever classified
    sys.exit(0 if result["frames_published"] > 0 else 1)


if __name__ == "__main__":
    main()
