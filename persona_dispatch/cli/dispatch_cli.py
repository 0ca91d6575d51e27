"""
Command-line interface for selecting personas from a catalog
"""

import argparse
import json
import sys
from typing import List, Optional

from ..config.settings import Settings
from ..core.persona_registry import PersonaRegistry
from ..core.trigger_matcher import explain
from ..data.models.persona_definition import TaskSignature
from ..utils.logging import setup_logger, get_component_logger
from ..utils.validation import DispatchError, validate_config_file


EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NO_MATCH = 3


class DispatchCLI:
    """
    CLI for the persona dispatch core
    """

    def __init__(self):
        self.settings = None
        self.logger = None
        self.registry = None

    def setup(self, config_path: Optional[str] = None, catalog: Optional[str] = None, debug: bool = False):
        """Setup CLI components"""
        if config_path:
            validation_issues = validate_config_file(config_path)
            fatal = [i for i in validation_issues if i.startswith(("Configuration file not found", "Failed to load"))]
            if fatal:
                raise DispatchError(f"Configuration validation failed: {fatal}")
            self.settings = Settings.from_file(config_path)
        else:
            self.settings = Settings.from_default_config()

        if catalog:
            self.settings.loading.source = catalog

        log_level = "DEBUG" if debug else self.settings.logging.level
        setup_logger(
            "persona_dispatch",
            level=log_level,
            log_file=self.settings.logging.log_file,
            console=self.settings.logging.console,
            file_logging=self.settings.logging.file_logging,
        )
        self.logger = get_component_logger("CLI", "Dispatch")
        self.logger.debug(f"Catalog source: {self.settings.loading.source}")

        self.registry = PersonaRegistry(self.settings)

    def _task(self, args) -> TaskSignature:
        return TaskSignature(text=args.task, hints=tuple(args.hint or ()))

    def select(self, args) -> int:
        """Select the persona for a task"""
        self.registry.initialize()
        result = self.registry.select(self._task(args), min_confidence=args.min_confidence)

        if args.json:
            print(json.dumps(result.to_dict(), indent=2))
        elif result:
            print(f"{result.persona_id}\t{result.score.value:.3f}")
            if args.show_profile:
                print()
                print(result.profile_body)
        else:
            best = result.best_candidate
            detail = f" (best: {explain(best)})" if best else ""
            print(f"No persona matched: {result.reason}{detail}")

        return EXIT_OK if result else EXIT_NO_MATCH

    def rank(self, args) -> int:
        """Show the ranking of all personas for a task"""
        self.registry.initialize()
        scores = self.registry.rank(self._task(args), top_k=args.top_k)
        for position, score in enumerate(scores, start=1):
            print(f"{position:>2}. {explain(score)}")
        return EXIT_OK

    def list_personas(self, args) -> int:
        """List the personas of the catalog"""
        catalog = self.registry.initialize()
        for definition in catalog:
            color = f" [{definition.color_tag}]" if definition.color_tag else ""
            first_line = definition.description.splitlines()[0]
            print(f"{definition.id}{color}: {first_line}")
            print(f"    {len(definition.trigger_examples)} trigger example(s)")
        if catalog.rejected:
            print(f"\n{len(catalog.rejected)} record(s) rejected:")
            for rejected in catalog.rejected:
                print(f"  {rejected.origin}: {rejected.reason}")
        return EXIT_OK

    def validate(self, args) -> int:
        """Load the catalog in strict mode and report issues"""
        issues = self.settings.validate_configuration()
        for issue in issues:
            print(f"config: {issue}")

        catalog = self.registry.store.load(strict=True)
        print(f"OK: {len(catalog)} persona(s) in {catalog.source}")
        return EXIT_OK

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Run the CLI"""
        parser = argparse.ArgumentParser(
            prog="persona-dispatch",
            description="Select agent personas for tasks",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  persona-dispatch select "Refactor this React hook" --hint react
  persona-dispatch rank "Add a Celery background job" --top-k 3
  persona-dispatch --catalog ./personas list-personas
  persona-dispatch validate
            """
        )

        parser.add_argument("--config", help="Path to configuration file")
        parser.add_argument("--catalog", help="Persona catalog directory or file (overrides config)")
        parser.add_argument("--debug", action="store_true", help="Enable debug logging")

        subparsers = parser.add_subparsers(dest="command", help="Available commands")

        select_parser = subparsers.add_parser("select", help="Select the persona for a task")
        select_parser.add_argument("task", help="Task description")
        select_parser.add_argument("--hint", action="append", help="Technology/domain tag (repeatable)")
        select_parser.add_argument("--min-confidence", type=float, help="Override the minimum confidence")
        select_parser.add_argument("--json", action="store_true", help="Print the selection as JSON")
        select_parser.add_argument("--show-profile", action="store_true", help="Print the persona profile body")

        rank_parser = subparsers.add_parser("rank", help="Rank every persona for a task")
        rank_parser.add_argument("task", help="Task description")
        rank_parser.add_argument("--hint", action="append", help="Technology/domain tag (repeatable)")
        rank_parser.add_argument("--top-k", type=int, default=None, help="Number of personas to show")

        subparsers.add_parser("list-personas", help="List catalog personas")
        subparsers.add_parser("validate", help="Validate configuration and catalog")

        args = parser.parse_args(argv)

        if not args.command:
            parser.print_help()
            return EXIT_ERROR

        commands = {
            "select": self.select,
            "rank": self.rank,
            "list-personas": self.list_personas,
            "validate": self.validate,
        }

        try:
            self.setup(args.config, args.catalog, args.debug)
            return commands[args.command](args)
        except DispatchError as e:
            print(f"Error: {e}", file=sys.stderr)
            return EXIT_ERROR
        finally:
            if self.registry is not None:
                self.registry.shutdown()


def main():
    """Main entry point"""
    sys.exit(DispatchCLI().run())


if __name__ == "__main__":
    main()
