"""Command line interface for the catalog course and program scraper."""

from __future__ import annotations

import argparse
import asyncio
import logging
import logging.config
import os
import sys
from pathlib import Path

import yaml
from dotenv import load_dotenv

from catalog import (
    CatalogArchive,
    CatalogFetcher,
    CatalogParser,
    CatalogWriter,
    CoursePipeline,
    CourseRecord,
    CrawlSettings,
    ProgramPipeline,
    ProgramRecord,
    combine_programs,
)
from catalog.crawler import Fetcher, collect_records

LOGGER = logging.getLogger(__name__)


def configure_logging(logging_path: Path) -> None:
    if not logging_path.exists():
        logging.basicConfig(level=logging.INFO)
        LOGGER.warning("Logging configuration %s not found. Using basicConfig().", logging_path)
        return

    logging.config.fileConfig(logging_path, disable_existing_loggers=False, defaults={"sys": sys})


def read_settings(path: Path) -> dict:
    if not path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")

    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Scrape catalog courses and programs into JSON.")
    parser.add_argument(
        "--config",
        default=os.getenv("CATALOG_SETTINGS", "config/settings.yaml"),
        help="Path to YAML settings file",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    crawl = commands.add_parser("crawl", help="Harvest courses and programs")
    crawl.add_argument("--debug", action="store_true", help="Process one page, one course and one program")
    crawl.add_argument("--max-pages", type=int, help="Process at most this many listing pages")
    crawl.add_argument("--concurrency", type=int, help="Override the concurrent fetch limit")
    crawl.add_argument("--courses-output", help="Override the courses JSON path")
    crawl.add_argument("--programs-output", help="Override the programs JSON path")

    plan = commands.add_parser("plan", help="Combine the requirements of two programs")
    plan.add_argument("first", help="Name of the first program")
    plan.add_argument("second", help="Name of the second program")
    return parser


def apply_overrides(settings: dict, args: argparse.Namespace) -> dict:
    catalog_cfg = settings.setdefault("catalog", {})
    crawler_cfg = settings.setdefault("crawler", {})

    if getattr(args, "debug", False):
        crawler_cfg["debug"] = True
    if getattr(args, "max_pages", None) is not None:
        crawler_cfg["max_pages"] = args.max_pages
    if getattr(args, "concurrency", None) is not None:
        crawler_cfg["concurrency"] = args.concurrency
    if getattr(args, "courses_output", None) is not None:
        catalog_cfg["courses_file"] = args.courses_output
    if getattr(args, "programs_output", None) is not None:
        catalog_cfg["programs_file"] = args.programs_output

    return settings


def create_crawl_components(settings: dict) -> tuple[CatalogParser, CrawlSettings, CatalogWriter, dict]:
    catalog_cfg = settings.get("catalog", {})
    crawler_cfg = settings.get("crawler", {})

    parser = CatalogParser(
        base_url=catalog_cfg.get("base_url", ""),
        course_link_pattern=catalog_cfg.get("course_link_pattern", "preview_course_nopop.php"),
        program_link_pattern=catalog_cfg.get("program_link_pattern", "preview_program.php"),
    )

    options = dict(
        listing_url_template=catalog_cfg.get("listing_url_template", ""),
        directory_url=catalog_cfg.get("directory_url", ""),
        concurrency=int(crawler_cfg.get("concurrency", 5)),
        page_cap=int(crawler_cfg.get("page_cap", 50)),
    )
    if crawler_cfg.get("debug"):
        crawl_settings = CrawlSettings.debug(**options)
    else:
        crawl_settings = CrawlSettings(
            max_pages=crawler_cfg.get("max_pages"),
            max_items_per_page=crawler_cfg.get("max_items_per_page"),
            max_programs=crawler_cfg.get("max_programs"),
            **options,
        )

    return parser, crawl_settings, CatalogWriter(), catalog_cfg


def format_summary(label: str, report: dict, outcomes: dict) -> str:
    total = report.get("total", 0)
    lines = [f"\n{label} completeness summary:", f"Total {label.lower()}: {total}"]
    lines.append("Outcomes: " + ", ".join(f"{status}={count}" for status, count in outcomes.items()))
    for field, stats in report.get("fields", {}).items():
        lines.append(
            f"  - {field}: {stats['present']}/{total} present ({stats['percent_present']}% coverage)"
        )
    return "\n".join(lines)


async def run_crawl(
    fetcher: Fetcher,
    parser: CatalogParser,
    settings: CrawlSettings,
    writer: CatalogWriter,
    *,
    courses_file: Path | str,
    programs_file: Path | str,
) -> dict:
    """Run the course pipeline then the program pipeline, persisting each."""
    limiter = asyncio.Semaphore(settings.concurrency)

    LOGGER.info("Parsing courses...")
    course_outcomes = await CoursePipeline(fetcher, parser, settings, limiter=limiter).run()
    courses = collect_records(course_outcomes)
    writer.write_json(courses, courses_file)
    LOGGER.info("Parsed %d courses. Data saved to %s", len(courses), courses_file)

    LOGGER.info("Parsing programs...")
    program_outcomes = await ProgramPipeline(fetcher, parser, settings, limiter=limiter).run()
    programs = collect_records(program_outcomes)
    writer.write_json(programs, programs_file)
    LOGGER.info("Parsed %d programs. Data saved to %s", len(programs), programs_file)

    return {
        "courses": (courses, writer.count_outcomes(course_outcomes)),
        "programs": (programs, writer.count_outcomes(program_outcomes)),
    }


def crawl_command(settings: dict) -> int:
    parser, crawl_settings, writer, catalog_cfg = create_crawl_components(settings)
    courses_file = catalog_cfg.get("courses_file", "data/output/courses.json")
    programs_file = catalog_cfg.get("programs_file", "data/output/majors.json")

    async def orchestrate() -> dict:
        async with CatalogFetcher() as fetcher:
            return await run_crawl(
                fetcher,
                parser,
                crawl_settings,
                writer,
                courses_file=courses_file,
                programs_file=programs_file,
            )

    results = asyncio.run(orchestrate())

    courses, course_counts = results["courses"]
    programs, program_counts = results["programs"]
    print(format_summary("Courses", writer.build_completeness_report(courses, CourseRecord), course_counts))
    print(format_summary("Programs", writer.build_completeness_report(programs, ProgramRecord), program_counts))
    return 0


def plan_command(settings: dict, args: argparse.Namespace) -> int:
    catalog_cfg = settings.get("catalog", {})
    archive = CatalogArchive.from_json(
        catalog_cfg.get("courses_file", "data/output/courses.json"),
        catalog_cfg.get("programs_file", "data/output/majors.json"),
    )

    try:
        first = archive.as_plan_program(args.first)
        second = archive.as_plan_program(args.second)
    except KeyError as exc:
        LOGGER.error("%s", exc.args[0])
        return 1

    plan = combine_programs(first, second)
    for course in plan["courses"]:
        print(f"{course['id']:<12} {course['hours']:>5}  {course['name']}")
    print(f"Total hours: {plan['totalHours']}")
    return 0


def main(argv: list[str] | None = None) -> int:
    load_dotenv()

    parser = build_argument_parser()
    args = parser.parse_args(argv)

    settings = read_settings(Path(args.config))
    settings = apply_overrides(settings, args)

    configure_logging(Path("logging.conf"))

    if args.command == "crawl":
        return crawl_command(settings)
    return plan_command(settings, args)


if __name__ == "__main__":
    raise SystemExit(main())
