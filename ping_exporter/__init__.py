"""
Command line entry point: dependency checks, environment overrides, logging.
"""

import sys


def check_project_dependencies() -> None:
    """
    Check all project dependencies before importing external packages.
    """
    required_packages = ["prometheus_client", "pydantic_settings", "yaml", "psutil", "rich"]
    missing_packages = []

    for pkg in required_packages:
        try:
            __import__(pkg)
        except ImportError:
            missing_packages.append(pkg)

    if missing_packages:
        print("Missing required Python packages:")
        for pkg in missing_packages:
            print(f"  - {pkg}")
        print("\nInstall them with:")
        print("  pip install -r requirements.txt")
        sys.exit(1)


def _apply_listen(value: str, environ) -> None:
    host, sep, port = value.rpartition(":")
    if not sep:
        raise ValueError(f"--listen expects HOST:PORT, got '{value}'")
    environ["METRICS_ADDR"] = host.strip("[]") or "0.0.0.0"
    environ["METRICS_PORT"] = str(int(port))


def main() -> None:
    """CLI entry point for the ping exporter."""
    import argparse
    import asyncio
    import logging
    import os
    import shutil

    # Parse CLI args BEFORE config is imported so env var overrides take effect
    parser = argparse.ArgumentParser(
        description="Ping Exporter - ICMP reachability and latency metrics for Prometheus",
        prog="ping-exporter",
    )
    parser.add_argument("--config", "-c", type=str, help="Endpoints YAML file (default: config.yaml)")
    parser.add_argument("--listen", "-l", type=str, help="Metrics listen address HOST:PORT (default: 0.0.0.0:9898)")
    parser.add_argument("--interval", "-i", type=float, help="Seconds between probes of one endpoint (default: 5)")
    parser.add_argument("--timeout", "-t", type=float, help="Probe timeout in seconds (default: 1)")
    parser.add_argument("--log-level", type=str, help="Logging level (default: INFO)")
    args = parser.parse_args()

    if args.config:
        os.environ["CONFIG_FILE"] = args.config
    if args.listen:
        try:
            _apply_listen(args.listen, os.environ)
        except ValueError as exc:
            parser.error(str(exc))
    if args.interval is not None:
        os.environ["PROBE_INTERVAL"] = str(args.interval)
    if args.timeout is not None:
        os.environ["PROBE_TIMEOUT"] = str(args.timeout)
    if args.log_level:
        os.environ["LOG_LEVEL"] = args.log_level

    check_project_dependencies()

    from pydantic import ValidationError
    from rich.console import Console

    console = Console(stderr=True)

    try:
        from config import CONFIG_FILE, LOG_FILE, LOG_LEVEL
    except ValidationError as exc:
        console.print(f"[bold red]Invalid settings:[/bold red] {exc}")
        sys.exit(1)

    if shutil.which("ping") is None:
        console.print("[bold red]The 'ping' command is not available.[/bold red]")
        if sys.platform != "win32":
            console.print("  Debian/Ubuntu: sudo apt-get install iputils-ping")
            console.print("  RHEL/CentOS: sudo yum install iputils")
            console.print("  Alpine: sudo apk add iputils")
        sys.exit(1)

    log_kwargs = {}
    if LOG_FILE:
        log_dir = os.path.dirname(LOG_FILE)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        log_kwargs = {"filename": LOG_FILE, "encoding": "utf-8"}
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
        **log_kwargs,
    )

    from core import EndpointConfigError
    from main import ExporterApp

    app = ExporterApp(CONFIG_FILE, console=console)
    try:
        app.setup()
    except EndpointConfigError as exc:
        logging.error(f"Invalid endpoint configuration: {exc}")
        console.print(f"[bold red]Invalid endpoint configuration:[/bold red] {exc}")
        sys.exit(1)

    try:
        asyncio.run(app.run())
    except OSError as exc:
        logging.error(f"Failed to start metrics server: {exc}")
        console.print(f"[bold red]Failed to start metrics server:[/bold red] {exc}")
        sys.exit(1)
    except KeyboardInterrupt:
        pass


__all__ = ["main", "check_project_dependencies"]
