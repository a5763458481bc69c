"""Command-line interface for pagescore."""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from pagescore.analyzer import PageAnalyzer
from pagescore.config import AnalysisOptions, AnalysisThresholds, settings
from pagescore.document import Document
from pagescore.exceptions import PageScoreError
from pagescore.fetcher import fetch_document
from pagescore.logging_config import setup_logging
from pagescore.models import SEOReport

SEVERITY_MARKERS = {
    "critical": "[CRITICAL]",
    "high": "[HIGH]",
    "medium": "[MEDIUM]",
    "low": "[LOW]",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pagescore",
        description="Score a single web page for SEO quality.",
    )
    parser.add_argument("url", help="URL of the page (also used for link classification with --file)")
    parser.add_argument("--file", help="Read HTML from a local file instead of fetching the URL")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    parser.add_argument("--thresholds", help="JSON file with rule thresholds")
    parser.add_argument("--log-level", default=settings.LOG_LEVEL, help="Logging level")
    parser.add_argument("--log-file", default=settings.LOG_FILE, help="Optional log file")
    return parser


def print_report(report: SEOReport) -> None:
    """Print a report in a human-readable format."""
    score = report.score
    print(f"\n{'=' * 60}")
    print(f"SEO Analysis for: {report.url}")
    print(f"{'=' * 60}")
    print(f"\nOverall Score: {score.overall}/100 (grade {report.grade})")
    print(f"{report.interpretation}")
    print("\nCategory Scores:")
    print(f"  - Technical:   {score.technical}/100")
    print(f"  - Content:     {score.content}/100")
    print(f"  - Performance: {score.performance}/100")

    if report.issues:
        print(f"\nIssues ({len(report.issues)}):")
        for issue in report.issues:
            marker = SEVERITY_MARKERS[issue.severity.value]
            print(f"  {marker} {issue.title}")
            print(f"      current: {issue.current_value} / expected: {issue.expected_value}")
            print(f"      fix: {issue.recommendation}")
    else:
        print("\nNo issues found.")

    if report.improvements:
        print("\nBiggest opportunities:")
        for item in report.improvements:
            print(f"  - {item['category']}: +{item['gain']} points")

    print(f"\n{'=' * 60}\n")


def load_document(args: argparse.Namespace) -> Document:
    if args.file:
        html = Path(args.file).read_text(encoding="utf-8")
        return Document(html, url=args.url)
    return fetch_document(args.url)


async def run(args: argparse.Namespace) -> SEOReport:
    thresholds = AnalysisThresholds.from_file(args.thresholds) if args.thresholds else None
    document = load_document(args)
    analyzer = PageAnalyzer(document, url=document.url or args.url, thresholds=thresholds)
    return await analyzer.audit(AnalysisOptions(use_cache=False))


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    try:
        report = asyncio.run(run(args))
    except (PageScoreError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(report.to_dict(), indent=2, default=str))
    else:
        print_report(report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
