"""
Console Notifier — timestamped operator output.

Every line the server prints goes through here, with ANSI colors for
readability: startup info, client traffic, control events, persistence
warnings and errors.
"""

from __future__ import annotations

import sys
from datetime import datetime, timezone

from scoreboard.models import Incident

# ANSI color codes for terminal styling
_RESET = "\033[0m"
_BOLD = "\033[1m"
_DIM = "\033[2m"
_RED = "\033[91m"
_GREEN = "\033[92m"
_YELLOW = "\033[93m"
_BLUE = "\033[94m"
_CYAN = "\033[96m"
_WHITE = "\033[97m"
_GRAY = "\033[90m"


def _ts() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def print_banner() -> None:
    """Print the startup banner."""
    banner = f"""
{_BOLD}{_GREEN}+------------------------------------------------------------------+
|          Safety Scoreboard -- Days Since Last Incident           |
|          Live * Single counter * WebSocket push                  |
+------------------------------------------------------------------+{_RESET}
"""
    print(banner)


def print_listening(host: str, port: int) -> None:
    """Print the address the server is bound to."""
    print(
        f"  {_BOLD}{_BLUE}> Listening:{_RESET} {_WHITE}http://{host}:{port}{_RESET}"
        f"  {_DIM}(viewer: /  admin: /admin){_RESET}"
    )


def print_state_loaded(path: str, days: int, incidents: int, running: bool) -> None:
    """Print a summary of the state restored at startup."""
    status = f"{_GREEN}running{_RESET}" if running else f"{_YELLOW}stopped{_RESET}"
    print(
        f"  {_BOLD}{_BLUE}> State:{_RESET} {_WHITE}{path}{_RESET}"
        f"  {_DIM}[{days} days, {incidents} incidents]{_RESET} {status}"
    )


def print_warning(message: str) -> None:
    """Print a non-fatal warning."""
    print(f"  {_GRAY}[{_ts()}]{_RESET} {_YELLOW}WARNING{_RESET} {message}")


def print_error(context: str, message: str) -> None:
    """Print an error message."""
    print(
        f"  {_GRAY}[{_ts()}]{_RESET} {_RED}ERROR{_RESET} "
        f"{_BOLD}{context}:{_RESET} {message}"
    )


def print_retry(context: str, attempt: int, wait: float) -> None:
    """Print a retry message with backoff info."""
    print(
        f"  {_DIM}{context}: Retrying in {wait:.1f}s "
        f"(attempt {attempt})...{_RESET}"
    )


def print_client_connected(peer: str, admin: bool, total: int) -> None:
    role = "admin" if admin else "viewer"
    print(
        f"  {_GRAY}[{_ts()}]{_RESET} {_CYAN}CONNECT{_RESET} {peer} "
        f"{_DIM}({role}, {total} connected){_RESET}"
    )


def print_client_disconnected(peer: str, total: int) -> None:
    print(
        f"  {_GRAY}[{_ts()}]{_RESET} {_DIM}DISCONNECT {peer} "
        f"({total} connected){_RESET}"
    )


def print_control_event(event: str, peer: str) -> None:
    """Print an accepted control event."""
    print(f"  {_GRAY}[{_ts()}]{_RESET} {_BOLD}{_GREEN}{event}{_RESET} {_DIM}from {peer}{_RESET}")


def print_rejected(event: str, peer: str, reason: str) -> None:
    """Print a control event that was refused."""
    print(
        f"  {_GRAY}[{_ts()}]{_RESET} {_RED}REJECTED{_RESET} "
        f"{_BOLD}{event}{_RESET} from {peer}: {reason}"
    )


def print_incident(incident: Incident, best_days: int) -> None:
    """Print a newly logged incident."""
    ts = incident.date.strftime("%Y-%m-%d %H:%M:%S")
    note = str(incident.note) if incident.note is not None else ""
    if len(note) > 200:
        note = note[:200] + "..."
    print()
    print(f"  {_GRAY}[{ts}]{_RESET} {_BOLD}{_RED}INCIDENT LOGGED{_RESET}")
    print(f"    {_BOLD}Id       :{_RESET} {incident.id}")
    print(f"    {_BOLD}Note     :{_RESET} {note}")
    print(f"    {_BOLD}Best     :{_RESET} {best_days} days")
    print()


def print_tick(days: int, hours: int, minutes: int, seconds: int) -> None:
    """Print a subtle heartbeat of the counter (debug level)."""
    print(
        f"  {_DIM}[{_ts()}] {days}d {hours:02d}:{minutes:02d}:{seconds:02d}{_RESET}",
        end="\r",
    )
    sys.stdout.flush()


def print_shutdown() -> None:
    """Print shutdown message."""
    print(f"\n{_BOLD}{_GREEN}Scoreboard stopped. Stay safe!{_RESET}\n")
