# secure_mail/log.py
# Console reporting: info/hint on stdout, warnings and errors on stderr.
from rich.console import Console
from rich.markup import escape

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)


def info(msg: str) -> None:
    console.print(f"[bold bright_green]info[/bold bright_green]: {msg}")


def hint(msg: str) -> None:
    console.print(f"[bold cyan]hint[/bold cyan]: {msg}")


def warning(msg: str) -> None:
    err_console.print(f"[bold bright_yellow]warning[/bold bright_yellow]: {msg}")


def error(context: str, cause: object) -> None:
    err_console.print(
        f"[bold bright_red]error[/bold bright_red]: [red]{escape(context)}[/red]: \"{escape(str(cause))}\""
    )
