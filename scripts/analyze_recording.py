"""Print the per-segment dominant frequencies of an audio file."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from mobile.deafield.audio.frequency import AnalysisError, FrequencyAnalyzer
from mobile.deafield.audio.loader import RecordingLoadError, load_samples
from mobile.deafield.config import CONFIG
from mobile.deafield.services.feedback import FeedbackTable
from mobile.deafield.services.logger import configure_logging


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Estimate dominant frequencies of a recording.")
    parser.add_argument("path", type=Path, help="Audio file readable by libsndfile (wav, flac, ogg).")
    parser.add_argument(
        "--segment-seconds",
        type=float,
        default=CONFIG.segment_seconds,
        help=f"Segment length in seconds (default: {CONFIG.segment_seconds}).",
    )
    parser.add_argument("--verbose", action="store_true", help="Show rejected segments as well.")
    args = parser.parse_args(argv)
    configure_logging("DEBUG" if args.verbose else CONFIG.log_level)

    try:
        samples, sample_rate = load_samples(args.path)
        segments = FrequencyAnalyzer(args.segment_seconds).segments(samples, sample_rate)
    except (RecordingLoadError, AnalysisError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    table = FeedbackTable.default_table()
    print(f"{args.path.name}: {len(samples)} samples @ {sample_rate} Hz, {len(segments)} segment(s)")
    for segment in segments:
        if segment.frequency is None:
            if args.verbose:
                print(f"  #{segment.index:<3} skipped (peak lag {segment.peak_lag})")
            continue
        action = table.resolve(segment.frequency)
        print(f"  #{segment.index:<3} {segment.frequency:9.2f} Hz  lag {segment.peak_lag:<6} -> {action.identifier}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
