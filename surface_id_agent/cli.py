#!/usr/bin/env python3
"""
Surface ID Agent CLI

Command-line interface for running the agent, checking its configuration,
and looking up registered surface ids.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

from . import daemon
from .config import ConfigLoader
from .errors import AgentError
from .models import RegistryEndpoint
from .registry import RegistryClient
from .rules import RuleStore


class SurfaceIdCLI:
    """CLI for the Surface ID Agent."""

    def __init__(self, registry: Optional[RegistryClient] = None):
        """
        Initialize CLI.

        Args:
            registry: Registry client for lookups (a single-attempt client if None)
        """
        self.registry = registry or RegistryClient(max_attempts=1)

    def cmd_run(self, args) -> int:
        """Run the agent against Sway."""
        log_level = "DEBUG" if args.verbose else None
        return asyncio.run(daemon.run(args.config, log_level))

    def cmd_check_config(self, args) -> int:
        """Validate configuration without starting the agent."""
        loader = ConfigLoader(args.config)
        try:
            config = loader.load()
            RuleStore().load(config.rules, config.default_range)
        except AgentError as e:
            if args.json:
                print(json.dumps({"valid": False, "error": e.to_dict()}, indent=2))
            else:
                print(f"❌ {e.message}")
                if e.suggestion:
                    print(f"  → {e.suggestion}")
            return 1

        if args.json:
            print(json.dumps({"valid": True, "config": config.model_dump(by_alias=True)}, indent=2))
            return 0

        print(f"✅ Configuration valid: {loader.config_path}")
        print(f"  Rules: {len(config.rules)}")
        for rule in config.rules:
            print(f"    {rule.describe()}")
        if config.default_range:
            print(f"  Default range: [{config.default_range.start}, {config.default_range.max})")
        else:
            print("  Default range: not set")
        print(f"  Registry: {config.registry}")
        return 0

    async def cmd_lookup(self, args) -> int:
        """Look up a registration by app id or surface id."""
        endpoint = RegistryEndpoint(host=args.host, port=args.port)
        if not await self.registry.connect(endpoint):
            print(f"❌ Registry not reachable at {endpoint}")
            return 1

        try:
            if args.surface_id is not None:
                app_id = await self.registry.lookup_app_id(args.surface_id)
                if app_id is None:
                    print(f"No application registered for surface id {args.surface_id}")
                    return 1
                print(app_id)
            else:
                surface_id = await self.registry.lookup_surface_id(args.app_id)
                if surface_id is None:
                    print(f"No surface id registered for {args.app_id}")
                    return 1
                print(surface_id)
            return 0
        finally:
            await self.registry.close()

    def build_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            description="Surface ID Agent",
            prog="surface-id-agent"
        )

        subparsers = parser.add_subparsers(dest="command", help="Command to execute")

        # Run command
        run_parser = subparsers.add_parser("run", help="Run the agent")
        run_parser.add_argument("--config", type=Path, help="Configuration file")
        run_parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

        # Check-config command
        check_parser = subparsers.add_parser("check-config", help="Validate configuration")
        check_parser.add_argument("--config", type=Path, help="Configuration file")
        check_parser.add_argument("--json", action="store_true", help="Output as JSON")

        # Lookup command
        lookup_parser = subparsers.add_parser("lookup", help="Look up a registered surface")
        target = lookup_parser.add_mutually_exclusive_group(required=True)
        target.add_argument("--app-id", help="Application id to resolve to a surface id")
        target.add_argument("--surface-id", type=int, help="Surface id to resolve to an application id")
        lookup_parser.add_argument("--host", default="127.0.0.1", help="Redis host")
        lookup_parser.add_argument("--port", type=int, default=6379, help="Redis port")

        return parser

    def run(self, argv=None) -> int:
        """Run CLI."""
        parser = self.build_parser()
        args = parser.parse_args(argv)

        if not args.command:
            parser.print_help()
            return 1

        try:
            if args.command == "run":
                return self.cmd_run(args)
            if args.command == "check-config":
                return self.cmd_check_config(args)
            if args.command == "lookup":
                return asyncio.run(self.cmd_lookup(args))
        except KeyboardInterrupt:
            print("\nInterrupted")
            return 130

        print(f"Unknown command: {args.command}")
        return 1


def main():
    """Main entry point."""
    cli = SurfaceIdCLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
