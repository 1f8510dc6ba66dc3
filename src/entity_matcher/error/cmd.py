import functools
import logging
from typing import Callable

import click
from git.exc import GitError
from rich.console import Console
from rich.markup import escape

from entity_matcher.analysis.matching.pruning import StructuralContractError
from entity_matcher.analysis.tree_loader import SnapshotError

console = Console()
logger = logging.getLogger(__name__)


def handle_command_errors(func: Callable) -> Callable:
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (click.ClickException, click.Abort):
            raise
        except FileNotFoundError as e:
            console.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False)
            raise click.Abort()
        except SnapshotError as e:
            console.print(f"[red]Invalid snapshot:[/red] {escape(str(e))}", highlight=False)
            raise click.Abort()
        except GitError as e:
            console.print(f"[red]Git error:[/red] {escape(str(e))}", highlight=False)
            raise click.Abort()
        except (ValueError, StructuralContractError) as e:
            console.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False)
            raise click.Abort()
        except Exception as e:
            logger.debug("Unexpected error", exc_info=True)
            console.print(f"[red]Unexpected error:[/red] {escape(str(e))}", highlight=False)
            raise click.Abort()

    return wrapper
