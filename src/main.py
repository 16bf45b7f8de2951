"""Program entry point (CLI dispatcher)."""
from __future__ import annotations
import logging
from config.settings import LOG_LEVEL
from src.cli.commands import cli

def main():  # pragma: no cover - thin wrapper
	logging.basicConfig(level=LOG_LEVEL, format='%(levelname)s %(name)s: %(message)s')
	cli()

if __name__ == '__main__':  # pragma: no cover
	main()
