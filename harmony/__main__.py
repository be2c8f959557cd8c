import argparse
import logging
import sys

from .core.config import ReferenceMode, load_config
from .core.errors import HarmonyError
from .core.pipeline import ProjectGenerationService


def setup_logging(log_level: str = "INFO") -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )
    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_NODE_ERRORS = 1
EXIT_FATAL = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="harmony",
        description="Harmony - generate IDE project files from assembly descriptors",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to harmony.yaml (default: ./config/harmony.yaml)"
    )
    parser.add_argument(
        "--project-root",
        type=str,
        default=None,
        help="Root folder of the project to generate files for"
    )
    parser.add_argument(
        "--editor-root",
        type=str,
        default=None,
        help="Editor installation folder substituted into hint paths"
    )
    parser.add_argument(
        "--reference-mode",
        type=str,
        default=None,
        choices=[m.value for m in ReferenceMode],
        help="Write references as project references or package references"
    )
    parser.add_argument(
        "--template",
        type=str,
        default=None,
        help="Project template file"
    )
    parser.add_argument(
        "--lockfile",
        type=str,
        default=None,
        help="Package lockfile (e.g. Packages/packages-lock.json)"
    )
    parser.add_argument(
        "--download-sources",
        action="store_true",
        help="Download registry package sources listed in the lockfile"
    )
    parser.add_argument(
        "--assembly",
        action="append",
        default=[],
        help="Additional assembly name to treat as user-owned (repeatable)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )
    return parser


def main(argv=None) -> int:
    """Main entry point for Harmony."""
    args = build_parser().parse_args(argv)

    setup_logging(args.log_level)

    try:
        config = load_config(
            args.config,
            project_root=args.project_root,
            editor_root=args.editor_root,
            reference_mode=args.reference_mode,
            template_path=args.template,
        )
        logger.info(f"Generating projects for {config.project_root}")

        service = ProjectGenerationService(config)
        result = service.run(
            lockfile_path=args.lockfile,
            download_sources=args.download_sources,
            user_assemblies=args.assembly,
        )
    except HarmonyError as e:
        logger.error(str(e))
        return EXIT_FATAL

    for error in result.errors:
        print(f"  error: {error}", file=sys.stderr)

    return EXIT_OK if result.ok else EXIT_NODE_ERRORS


if __name__ == "__main__":
    sys.exit(main())
