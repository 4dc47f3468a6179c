#!/usr/bin/env python
"""
Game review runner: PGN → engine analysis → critical moments, tactics,
phase accuracy and composite scores for one player.

    python analyze.py GAME.pgn --color white [--depth N] [--json]
"""
import argparse
import asyncio
import sys
from pathlib import Path

from game_review.config import configure_logging, get_settings
from game_review.errors import AnalysisError
from game_review.evaluation import format_score
from game_review.pipeline import open_pipeline
from game_review.schemas import AnalysisSummary
from game_review.transcript import Transcript


def print_progress(current: int, total: int, label: str) -> None:
    print(f"\r  ⏳ {current:>3}/{total} positions evaluated", end="", file=sys.stderr, flush=True)
    if current == total:
        print(file=sys.stderr)


def print_report(summary: AnalysisSummary) -> None:
    stats = summary.statistics
    print("\n" + "=" * 70)
    print(f"🔍 GAME REVIEW: {summary.game_id} ({summary.player_color}, {summary.result})")
    print("=" * 70)

    if stats.overall_accuracy is None:
        print("\n  ⚠️  No moves could be analyzed for this player")
    else:
        print(f"\n  📈 OVERALL:")
        print(f"     Accuracy:       {stats.overall_accuracy:>7.1f} %")
        print(f"     Avg CPL:        {stats.average_centipawn_loss:>7.1f} cp")
        print(f"     Excellent:      {stats.excellent:>7}")
        print(f"     Good:           {stats.good:>7}")
        print(f"     Inaccuracies:   {stats.inaccuracies:>7}")
        print(f"     Mistakes:       {stats.mistakes:>7}")
        print(f"     Blunders:       {stats.blunders:>7}")
    if stats.unanalyzed_moves:
        print(f"     Not analyzed:   {stats.unanalyzed_moves:>7}")

    print(f"\n  🎯 BY PHASE:")
    for phase in summary.phases:
        window = "—" if phase.is_empty else f"{phase.start}-{phase.end}"
        accuracy = "   n/a" if phase.accuracy is None else f"{phase.accuracy:6.1f}"
        print(f"     {phase.name.capitalize():11} | moves {window:>7} | accuracy {accuracy}")

    own_moments = [m for m in summary.critical_moments if m.color == summary.player_color]
    if own_moments:
        print(f"\n  ⚡ CRITICAL MOMENTS:")
        for moment in own_moments:
            print(
                f"     Move {moment.move_number:>3} {moment.type.value:<13} "
                f"{format_score(moment.evaluation_before):>7} → {format_score(moment.evaluation_after):<7} "
                f"{moment.description}"
            )

    own_tactics = [t for t in summary.tactical_opportunities if t.color == summary.player_color]
    if own_tactics:
        print(f"\n  🧩 TACTICS:")
        for tactic in own_tactics:
            mark = "✓" if tactic.outcome.value == "found" else "✗"
            print(f"     {mark} Move {tactic.move_number:>3}: {tactic.description}")

    print(f"\n  🏆 COMPOSITE SCORES:")
    for name, value in summary.scores.to_dict().items():
        label = name.replace("_", " ").title()
        print(f"     {label:<18} {value:>6.1f}")
    print("=" * 70 + "\n")


async def run(args) -> AnalysisSummary:
    settings = get_settings()
    if args.depth is not None:
        settings = settings.model_copy(update={"analysis_depth": args.depth, "deep_analysis": False})

    pgn_text = Path(args.pgn).read_text(encoding="utf-8")
    transcript = Transcript.from_pgn(pgn_text, player_color=args.color)

    async with open_pipeline(settings) as pipeline:
        return await pipeline.analyze(
            transcript,
            progress=None if args.json else print_progress,
        )


def main(argv=None):
    parser = argparse.ArgumentParser(description="Analyze one game for one player")
    parser.add_argument("pgn", help="Path to a PGN file (first game is used)")
    parser.add_argument("--color", choices=["white", "black"], default="white", help="Player to analyze")
    parser.add_argument("--depth", type=int, help="Search depth (overrides GAME_REVIEW_ANALYSIS_DEPTH)")
    parser.add_argument("--json", action="store_true", help="Print the full analysis as JSON")
    parser.add_argument("--log-level", help="Logging level (default from settings)")
    args = parser.parse_args(argv)

    configure_logging(args.log_level)

    try:
        summary = asyncio.run(run(args))
    except KeyboardInterrupt:
        print("\n⏸️  Analysis interrupted by user", file=sys.stderr)
        return 1
    except AnalysisError as e:
        print(f"\n❌ {e.code}: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"\n❌ Cannot read {args.pgn}: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(summary.to_json())
    else:
        print_report(summary)
    return 0


if __name__ == '__main__':
    sys.exit(main())
