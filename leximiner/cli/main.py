import argparse
import json
import sys
import logging
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional

from ..exceptions import ConfigurationError
from ..utils.logger import setup_logger

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_EMPTY = 1
EXIT_CONFIG = 2


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="leximiner",
        description="leximiner - dictionary-based text analysis",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose output"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    _add_score_subparser(subparsers)
    _add_aggregate_subparser(subparsers)
    _add_dictionary_subparser(subparsers)
    _add_visualize_subparser(subparsers)

    return parser


def _add_dictionary_option(p, required: bool = False):
    p.add_argument(
        "-d",
        "--dictionary",
        default=None,
        required=required,
        help="Dictionary file (.yaml/.json) or builtin:<name> (default: builtin:sentiment)",
    )


def _add_score_subparser(subparsers):
    """Add the score subcommand."""
    score_parser = subparsers.add_parser(
        "score", help="Score a corpus against a dictionary"
    )
    score_parser.add_argument(
        "-i", "--input", type=Path, help="Corpus: .txt directory, .csv, .json or .jsonl"
    )
    score_parser.add_argument(
        "-c", "--config", type=Path, help="YAML analysis config (overrides defaults)"
    )
    _add_dictionary_option(score_parser)
    score_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("output"),
        help="Output directory (default: output)",
    )
    score_parser.add_argument(
        "--format", choices=["txt", "csv", "json", "jsonl"], help="Corpus format"
    )
    score_parser.add_argument("--text-field", default=None, help="Text column/key")
    score_parser.add_argument("--id-field", default=None, help="Document id column/key")
    score_parser.add_argument(
        "--compounds",
        default=None,
        help="Compound rules: YAML list file, builtin:negations, or 'dictionary'",
    )
    score_parser.add_argument(
        "--stopwords",
        default=None,
        help="Stopword language, or 'none' to keep all terms (default: english)",
    )
    score_parser.add_argument(
        "--denominator",
        choices=["matched", "terms", "tokens"],
        default=None,
        help="Total used for proportions (default: terms)",
    )
    score_parser.add_argument(
        "--workers", type=int, default=None, help="Number of parallel workers"
    )
    score_parser.add_argument(
        "--executor",
        choices=["serial", "thread", "process"],
        default=None,
        help="Worker pool type (default: thread)",
    )


def _add_aggregate_subparser(subparsers):
    """Add the aggregate subcommand."""
    agg_parser = subparsers.add_parser(
        "aggregate", help="Group scored documents by metadata"
    )
    agg_parser.add_argument(
        "-i", "--input", type=Path, required=True, help="scores.json from 'score'"
    )
    agg_parser.add_argument(
        "--by", required=True, help="Comma-separated metadata key(s) to group by"
    )
    agg_parser.add_argument(
        "--denominator",
        choices=["matched", "terms", "tokens"],
        default="terms",
        help="Total used for proportions (default: terms)",
    )
    agg_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("output"),
        help="Output directory (default: output)",
    )


def _add_dictionary_subparser(subparsers):
    """Add the dictionary subcommand."""
    dict_parser = subparsers.add_parser(
        "dictionary", help="Validate a dictionary and list its categories"
    )
    _add_dictionary_option(dict_parser, required=True)


def _add_visualize_subparser(subparsers):
    """Add the visualize subcommand."""
    visualize_parser = subparsers.add_parser(
        "visualize", help="Generate figures and an HTML report from scores"
    )
    visualize_parser.add_argument(
        "-i", "--input", type=Path, required=True, help="scores.json from 'score'"
    )
    visualize_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("output"),
        help="Output directory (default: output)",
    )
    visualize_parser.add_argument(
        "--by", default=None, help="Comma-separated metadata key(s) to group by"
    )
    visualize_parser.add_argument(
        "--denominator",
        choices=["matched", "terms", "tokens"],
        default="terms",
        help="Total used for group proportions (default: terms)",
    )
    html_group = visualize_parser.add_mutually_exclusive_group()
    html_group.add_argument(
        "--html",
        dest="html",
        action="store_true",
        help="Generate HTML report (default)",
    )
    html_group.add_argument(
        "--no-html", dest="html", action="store_false", help="Skip the HTML report"
    )
    visualize_parser.set_defaults(html=True)
    visualize_parser.add_argument(
        "--figures", action="store_true", help="Generate static figures (PNG/PDF)"
    )
    visualize_parser.add_argument(
        "--dpi", type=int, default=300, help="DPI for static figures (default: 300)"
    )


def _build_config(args):
    from ..config import AnalysisConfig, load_config

    config = load_config(args.config) if args.config else AnalysisConfig()

    if args.dictionary is not None:
        config.dictionary = args.dictionary
        config.base_dir = Path.cwd()
    if args.compounds is not None:
        config.compounds = args.compounds
    if args.stopwords is not None:
        config.stopwords = None if args.stopwords.lower() == "none" else args.stopwords
    if args.denominator is not None:
        from ..analyzers.scorer import Denominator

        config.denominator = Denominator.parse(args.denominator)
    if args.workers is not None:
        config.workers = args.workers
    if args.executor is not None:
        config.executor = args.executor
    if args.input is not None:
        config.corpus.path = args.input
    if args.format is not None:
        config.corpus.format = args.format
    if args.text_field is not None:
        config.corpus.text_field = args.text_field
    if args.id_field is not None:
        config.corpus.id_field = args.id_field
    return config


def cmd_score(args) -> int:
    """Execute the score command."""
    from ..corpus import load_corpus
    from ..pipeline import Pipeline

    config = _build_config(args)
    logger.debug(f"Resolved config: {config}")
    if config.corpus.path is None:
        print("No corpus given: pass -i/--input or set corpus.path in the config")
        return EXIT_CONFIG

    pipeline = Pipeline.from_config(config, show_progress=True)
    documents = load_corpus(
        config.corpus.path,
        format=config.corpus.format,
        text_field=config.corpus.text_field,
        id_field=config.corpus.id_field,
    )
    if not documents:
        print(f"No documents found in {config.corpus.path}")
        return EXIT_EMPTY

    print(f"Scoring {len(documents)} document(s)...")
    result = pipeline.run(documents)

    output_dir = args.output
    output_dir.mkdir(parents=True, exist_ok=True)
    records = pipeline.score(result)
    pipeline.save_json(records, output_dir / "scores.json")
    pipeline.save_csv(records, output_dir / "scores.csv")
    pipeline.save_json([asdict(e) for e in result.errors], output_dir / "errors.json")

    if config.group_by:
        groups = pipeline.aggregate(result, by=config.group_by)
        pipeline.save_json(groups, output_dir / "groups.json")
        pipeline.save_csv(groups, output_dir / "groups.csv")

    print(f"Scored {len(result.rows)}/{len(documents)} documents ({len(result.errors)} errors)")
    return EXIT_OK


def _load_rows(path: Path):
    from ..pipeline import row_from_record

    if not path.exists():
        raise ConfigurationError(f"Scores file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid scores file {path}: {e}") from e
    if not isinstance(data, list):
        raise ConfigurationError(f"{path} must contain a list of score records")
    return data, [row_from_record(r) for r in data]


def _group_records(rows, by: List[str], denominator: str):
    from ..analyzers.scorer import Scorer
    from ..pipeline import group_records

    categories = list(rows[0].counts) if rows else []
    return group_records(rows, by, Scorer(categories, denominator))


def cmd_aggregate(args) -> int:
    """Execute the aggregate command."""
    from ..pipeline import Pipeline

    _, rows = _load_rows(args.input)
    if not rows:
        print(f"No score records in {args.input}")
        return EXIT_EMPTY

    by = [k.strip() for k in args.by.split(",") if k.strip()]
    groups = _group_records(rows, by, args.denominator)

    output_dir = args.output
    Pipeline.save_json(groups, output_dir / "groups.json")
    Pipeline.save_csv(groups, output_dir / "groups.csv")
    print(f"Aggregated {len(rows)} documents into {len(groups)} group(s)")
    return EXIT_OK


def cmd_dictionary(args) -> int:
    """Execute the dictionary command."""
    from ..config import AnalysisConfig

    dictionary = AnalysisConfig(dictionary=args.dictionary).load_dictionary()
    print(f"{len(dictionary)} categories")
    for name in dictionary:
        patterns = dictionary.patterns(name)
        wildcards = sum(1 for p in patterns if p.kind != "exact")
        print(f"  {name}: {len(patterns)} patterns ({wildcards} wildcard)")
    phrases = dictionary.multiword_phrases()
    if phrases:
        print(f"{len(phrases)} multi-word entries (use --compounds dictionary)")
    return EXIT_OK


def cmd_visualize(args) -> int:
    """Execute the visualize command."""
    records, rows = _load_rows(args.input)
    if not records:
        print(f"No score records in {args.input}")
        return EXIT_EMPTY

    output_dir = args.output
    output_dir.mkdir(parents=True, exist_ok=True)

    groups = None
    if args.by:
        by = [k.strip() for k in args.by.split(",") if k.strip()]
        groups = _group_records(rows, by, args.denominator)

    if args.html:
        from ..visualizers.html_report import generate_html_report

        report_path = generate_html_report(records, output_dir, groups=groups)
        print(f"HTML report: {report_path}")

    if args.figures:
        from ..visualizers.static_figures import generate_figures

        figure_paths = generate_figures(records, output_dir, groups=groups, dpi=args.dpi)
        print(f"Generated {len(figure_paths)} figures")

    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logger("leximiner", logging.DEBUG if args.verbose else logging.INFO)

    if args.command is None:
        parser.print_help()
        return EXIT_OK

    commands = {
        "score": cmd_score,
        "aggregate": cmd_aggregate,
        "dictionary": cmd_dictionary,
        "visualize": cmd_visualize,
    }

    try:
        return commands[args.command](args)
    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        return EXIT_CONFIG


if __name__ == "__main__":
    sys.exit(main())
