"""Command-line entry point: run one scan and print the result table."""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

load_dotenv()

from .backend.http import HttpEvaluationBackend
from .compiler.compiler import ScanCompiler
from .config import load_config
from .core.errors import CompilationError, ScanExecutionError
from .core.models import ScanState
from .executor.executor import ScanExecutor
from .expression.symbols import SymbolTable

logger = logging.getLogger(__name__)

USAGE = "usage: python -m ez_scan.main <scan_state.json>"


def setup_logging(config: Dict) -> None:
    """Configure root logging from the ``logging`` config section."""
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.get('file'):
        handlers.append(logging.FileHandler(config['file']))

    logging.basicConfig(
        level=getattr(logging, str(config.get('level', 'INFO')).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
    )


def build_executor(config: Dict) -> ScanExecutor:
    """Wire the HTTP backend, compiler and executor from *config*."""
    backend = HttpEvaluationBackend(config['backend'])
    compiler = ScanCompiler(symbols=SymbolTable(config['symbols']['aliases']))
    return ScanExecutor(
        backend,
        compiler=compiler,
        timeout=config['executor']['timeout'],
        cache_ttl=config['executor']['cache_ttl'],
    )


def read_state(path: Path, default_market: str) -> ScanState:
    """Load a scan state from a JSON file; ``market`` falls back to the configured one."""
    data = json.loads(path.read_text())
    data.setdefault('market', default_market)
    return ScanState.model_validate(data)


async def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) != 1:
        print(USAGE, file=sys.stderr)
        return 2

    config = load_config()
    setup_logging(config['logging'])

    try:
        state = read_state(Path(argv[0]), config['scan']['market'])
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logger.error(f"Cannot load scan state from {argv[0]}: {e}")
        return 2

    try:
        executor = build_executor(config)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    try:
        result = await executor.execute(state)
    except CompilationError as e:
        logger.error(f"Invalid scan configuration: {e}")
        return 1
    except ScanExecutionError as e:
        logger.error(f"Scan failed: {e}")
        return 1
    finally:
        await executor.close()

    print(result.to_frame(decimals=2).to_string())
    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
