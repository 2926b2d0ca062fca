# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Command-line interface for mail-dispatch.

Usage:
    mail-dispatch config
    mail-dispatch check
    mail-dispatch send user@example.com --subject "Hello" --body "<p>Hi</p>"
    mail-dispatch send user@example.com -s "Report" --body-file report.html \\
        --attach report.pdf --cc boss@example.com

Settings are read from ``--config`` (default: ``$MAIL_CONFIG`` or
``config.ini``) with ``MAIL_*`` environment variables as fallbacks.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from .config_loader import MailerConfig, load_config
from .errors import AttachmentError
from .mailer import Mailer

console = Console()
err_console = Console(stderr=True)


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    err_console.print(f"[red]Error:[/red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def print_json(data: Any) -> None:
    """Print data as formatted JSON."""
    console.print_json(json.dumps(data, indent=2, default=str))


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def _load(ctx: click.Context) -> MailerConfig:
    try:
        return load_config(ctx.obj.get("config_path"), **ctx.obj.get("overrides", {}))
    except FileNotFoundError as exc:
        print_error(str(exc))
        sys.exit(1)
    except ValidationError as exc:
        print_error(f"Invalid configuration:\n{exc}")
        sys.exit(1)


@click.group()
@click.version_option(package_name="mail-dispatch")
@click.option("--config", "-c", "config_path", type=click.Path(dir_okay=False), default=None,
              help="Path to config.ini (default: $MAIL_CONFIG or config.ini).")
@click.option("--environment", "-e", default=None, help="Override the deployment environment (live, development).")
@click.option("--log-level", default=lambda: os.getenv("MAIL_LOG_LEVEL", "INFO"), show_default="INFO",
              help="Logging level.")
@click.pass_context
def main(ctx: click.Context, config_path: Optional[str], environment: Optional[str], log_level: str) -> None:
    """Compose and deliver email over SMTP."""
    _configure_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["overrides"] = {"environment": environment} if environment else {}


@main.command("config")
@click.pass_context
def show_config(ctx: click.Context) -> None:
    """Show the effective configuration (password masked)."""
    print_json(_load(ctx).redacted())


@main.command("check")
@click.pass_context
def check_connection(ctx: click.Context) -> None:
    """Verify that the SMTP relay is reachable."""
    config = _load(ctx)
    if not config.is_live:
        console.print("[yellow]Development environment: messages are captured, no relay to check.[/yellow]")
        return
    mailer = Mailer(config)
    if not mailer.check_connection():
        print_error(f"Cannot reach SMTP relay {config.smtp_host}:{config.smtp_port}")
        sys.exit(1)
    print_success(f"SMTP relay {config.smtp_host}:{config.smtp_port} is reachable")


@main.command("send")
@click.argument("recipients", nargs=-1, required=True)
@click.option("--subject", "-s", required=True, help="Subject line.")
@click.option("--body", "-b", default=None, help="Message body.")
@click.option("--body-file", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None,
              help="Read the message body from a file.")
@click.option("--text", "plain_text", is_flag=True, help="Send the body as text/plain instead of HTML.")
@click.option("--alt-body", default=None, help="Plain-text alternative body.")
@click.option("--cc", multiple=True, help="Carbon-copy recipient (repeatable).")
@click.option("--bcc", multiple=True, help="Blind carbon-copy recipient (repeatable).")
@click.option("--attach", "-a", "attach_paths", multiple=True, help="File to attach (repeatable).")
@click.option("--from-email", default=None, help="Sender address.")
@click.option("--from-name", default=None, help="Sender display name.")
@click.option("--reply-to", default=None, help="Reply-To address.")
@click.option("--header", "-H", "raw_headers", multiple=True, help="Extra header as 'Name: value' (repeatable).")
@click.pass_context
def send_message(
    ctx: click.Context,
    recipients: tuple[str, ...],
    subject: str,
    body: Optional[str],
    body_file: Optional[Path],
    plain_text: bool,
    alt_body: Optional[str],
    cc: tuple[str, ...],
    bcc: tuple[str, ...],
    attach_paths: tuple[str, ...],
    from_email: Optional[str],
    from_name: Optional[str],
    reply_to: Optional[str],
    raw_headers: tuple[str, ...],
) -> None:
    """Send one email to RECIPIENTS."""
    if body_file is not None:
        body = body_file.read_text(encoding="utf-8")
    if body is None:
        print_error("Provide --body or --body-file")
        sys.exit(1)

    headers: dict[str, str] = {}
    for raw in raw_headers:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            print_error(f"Invalid header {raw!r}, expected 'Name: value'")
            sys.exit(1)
        headers[name.strip()] = value.strip()

    config = _load(ctx)
    mailer = Mailer(config)
    try:
        attachments = [mailer.attach(path) for path in attach_paths]
    except AttachmentError as exc:
        print_error(str(exc))
        sys.exit(1)

    try:
        options = mailer.default_options(
            from_email=from_email,
            from_name=from_name,
            reply_to=reply_to,
            content_type="text/plain" if plain_text else None,
        )
    except ValidationError as exc:
        print_error(f"Invalid sender options:\n{exc}")
        sys.exit(1)
    message = mailer.build_message(
        list(recipients), subject, body, cc=list(cc), bcc=list(bcc), alt_body=alt_body,
        headers=headers, attachments=attachments,
    )
    result = mailer.deliver(message, options)
    if not result.ok:
        print_error(f"{result.error_kind}: {result.error}")
        sys.exit(1)

    if result.status == "captured" and mailer.mailbox is not None:
        captured = mailer.mailbox.last_message
        table = Table(title="Captured email")
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        table.add_row("To", ", ".join(captured.to))
        table.add_row("Cc", ", ".join(captured.cc))
        table.add_row("Subject", captured.subject)
        table.add_row("Attachments", ", ".join(att.name for att in captured.attachments))
        console.print(table)
        print_success("Email captured (development environment)")
        return
    print_success(f"Email sent to {', '.join(result.recipients)}")


if __name__ == "__main__":
    main()
