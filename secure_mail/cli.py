# secure_mail/cli.py
import sys
from typing import Optional

import typer
from rich.markup import escape

from . import log
from .errors import ConfigError, SecureMailError
from .services.config_manager import ConfigManager
from .services.mail_service import send_mail
from .services.prompts import PromptProvider, RichPromptProvider, validate_email
from .storage.config_store import ConfigStore, SaveOutcome, SaveReport

app = typer.Typer(
    help="Secure Mail - send an email with an SMTP login stored under AES-256-GCM",
    add_completion=False,
)


def make_prompts() -> PromptProvider:
    return RichPromptProvider()


def report_save(report: SaveReport) -> None:
    for result in report.results.values():
        name = result.location.value.lower()
        where = escape(str(result.path))
        if result.outcome is SaveOutcome.WRITTEN:
            log.info(f"{name} config written to {where}")
        elif result.outcome is SaveOutcome.DECLINED:
            log.warning(f"{name} config at {where} left unchanged")
        else:
            log.error(f"failed to save the {name} config", result.error)


def configure(prompts: PromptProvider) -> SaveReport:
    """Ask for login + relay, encrypt and save to the chosen locations."""
    config = ConfigManager.ask(prompts)
    if not config.locations:
        log.warning("no save location selected, nothing was written")
    report = config.save()
    report_save(report)
    return report


def read_body(stream=None) -> str:
    stream = stream or sys.stdin
    log.console.print("[bright_green]message body (end with CTRL-D, or CTRL-Z then Enter on Windows):[/bright_green]")
    return "".join(stream.readlines())


def interactive(prompts: PromptProvider) -> None:
    log.info("You have entered no commands. To see a list of commands run this program with [blue]--help[/blue].")
    try:
        config = ConfigManager.from_file()
    except ConfigError as e:
        log.warning(f"failed to read config for login information: {escape(str(e))}")
        if not prompts.confirm("Do you want to set and save your login information?"):
            log.info("aborting...")
            return
        report = configure(prompts)
        if report.written:
            log.info("To send an Email, run this program again with the arguments specified in the help menu")
            log.hint("Access the help menu by passing [green]--help[/green] to the program on startup.")
        if not report.ok:
            raise typer.Exit(1)
        return

    log.info(f"Existing configuration found in {escape(str(config.path))}.")
    if not prompts.confirm("Do you want to send an Email?"):
        log.info("aborting...")
        return

    to = prompts.text("recipient email:", validator=validate_email)
    subject = prompts.text("subject:", default="")
    body = read_body()
    send_mail(config, to, subject, body)
    log.info("Successfully sent Mail!")


@app.command()
def main(
    configure_: bool = typer.Option(False, "--configure", "-c", help="Set the global/local user email & password"),
    to: Optional[str] = typer.Option(None, "--to", "-t", help="Recipient email"),
    subject: Optional[str] = typer.Option(None, "--subject", "-s", help="Subject line"),
    msg: Optional[str] = typer.Option(None, "--msg", "-m", help="Message body"),
    where: bool = typer.Option(False, "--where", help="Show which config file would be used"),
):
    """Send one email, or configure the stored SMTP login with --configure."""
    try:
        if where:
            path = ConfigStore().resolve()
            typer.echo(str(path))
        elif configure_:
            if not configure(make_prompts()).ok:
                raise typer.Exit(1)
        elif to is None and subject is None and msg is None:
            interactive(make_prompts())
        else:
            missing = [name for name, value in (("--to", to), ("--subject", subject), ("--msg", msg)) if value is None]
            if missing:
                raise typer.BadParameter(f"missing {', '.join(missing)}")
            config = ConfigManager.from_file()
            send_mail(config, to, subject, msg)
            log.info("Successfully sent Mail!")
    except SecureMailError as e:
        log.error(type(e).__name__, e)
        raise typer.Exit(1)
    except (KeyboardInterrupt, EOFError):
        log.info("aborting...")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
