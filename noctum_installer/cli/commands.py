"""CLI commands for noctum-installer."""

import signal
from pathlib import Path

import typer
from rich.console import Console

from noctum_installer import __logo__, __version__

app = typer.Typer(
    name="noctum-install",
    help=f"{__logo__} Install, supervise and remove the noctum daemon",
    invoke_without_command=True,
)

console = Console()

REPO_URL = "https://github.com/SeanCheatham/Noctum"


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} noctum-installer v{__version__}")
        raise typer.Exit()


def _exit_on_sigterm(signum, frame):
    # Unwind normally so the temporary workspace is removed.
    raise SystemExit(128 + signum)


@app.callback()
def main(
    ctx: typer.Context,
    service: bool = typer.Option(
        False, "--service/--no-service",
        help="Install and start the native service (systemd/launchd) after deploying",
    ),
    uninstall: bool = typer.Option(
        False, "--uninstall", help="Remove noctum (ignores --service/--no-service)",
    ),
    install_dir: Path = typer.Option(
        None, "--install-dir", help="Where to put the binary [default: /usr/local/bin]",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    version: bool = typer.Option(
        None, "--version", callback=version_callback, is_eager=True
    ),
):
    """Install noctum. Use --uninstall to remove it again."""
    from noctum_installer.config import InstallerSettings, InstallOptions, current_identity
    from noctum_installer.log import setup_logging

    setup_logging(verbose)
    settings = InstallerSettings()
    options = InstallOptions(
        uninstall=uninstall,
        manage_service=service and not uninstall,
        install_dir=install_dir or settings.install_dir,
        identity=current_identity(),
    )
    ctx.obj = (settings, options)
    if ctx.invoked_subcommand is not None:
        return

    _run(settings, options)


def _run(settings, options) -> None:
    from noctum_installer.errors import InstallerError, ServiceInstallError
    from noctum_installer.orchestrator import LifecycleOrchestrator

    signal.signal(signal.SIGTERM, _exit_on_sigterm)

    if options.uninstall:
        console.print(f"{__logo__} Uninstalling noctum...")
    else:
        console.print(f"{__logo__} Installing noctum...")

    try:
        result = LifecycleOrchestrator(settings, options).run()
    except ServiceInstallError as e:
        console.print(f"[red]Error: {e}[/red]")
        console.print(
            f"[yellow]The binary is usable without a service:[/yellow] {e.binary_path} start"
        )
        raise typer.Exit(e.exit_code)
    except InstallerError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(e.exit_code)
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled.[/yellow]")
        raise typer.Exit(130)

    if options.uninstall:
        _print_uninstalled(result, options)
    else:
        _print_installed(result, options)


def _print_installed(result, options) -> None:
    console.print(f"Platform: {result.platform}")
    console.print(
        f"[green]✓[/green] noctum {result.version} installed to {result.binary_path}"
    )

    if options.manage_service:
        if result.supervised:
            console.print(
                f"[green]✓[/green] Service {result.service.status.value}"
                f" ({result.service.service_file})"
            )
        else:
            console.print(
                "[yellow]No supported service manager found; "
                "the service was not installed.[/yellow]"
            )

    console.print("\n[green]Next steps:[/green]")
    console.print("  1. Install Ollama: https://ollama.com/")
    console.print("  2. Pull a model: ollama pull qwen2.5-coder")
    if result.supervised:
        console.print("  3. noctum is running as a service")
    else:
        console.print(f"  3. Start noctum: {result.binary_path} start")
    console.print("  4. Open dashboard: http://localhost:8420")
    console.print("\n[green]For configuration options, see:[/green]")
    console.print(f"  {REPO_URL}/blob/main/config.example.toml")


def _print_uninstalled(result, options) -> None:
    from noctum_installer.config import get_config_dir, get_data_dir

    if result.service_removed:
        console.print("[green]✓[/green] Service removed")
    if result.binary_removed:
        console.print("[green]✓[/green] Binary removed")
    else:
        console.print("[yellow]Binary not found[/yellow]")

    home = options.identity.home
    console.print("\n[green]noctum uninstalled.[/green]")
    console.print("\n[yellow]Note: Configuration and data files were not removed.[/yellow]")
    console.print(f"  Config: {get_config_dir(home)}")
    console.print(f"  Data:   {get_data_dir(home)}")
    console.print("\nTo remove all data, run:")
    console.print(f"  rm -rf {get_config_dir(home)} {get_data_dir(home)}")


@app.command()
def status(ctx: typer.Context):
    """Show binary and service status."""
    from noctum_installer.errors import UnsupportedPlatformError
    from noctum_installer.privilege import get_elevator
    from noctum_installer.release.platform import resolve_os_family
    from noctum_installer.service import ServiceStatus, get_adapter

    settings, options = ctx.obj
    binary = options.install_dir.expanduser() / settings.binary_name

    try:
        os_family = resolve_os_family()
    except UnsupportedPlatformError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(e.exit_code)

    adapter = get_adapter(os_family, settings, options.identity, get_elevator())
    info = adapter.status()

    status_styles = {
        ServiceStatus.RUNNING: "[green]running[/green]",
        ServiceStatus.STOPPED: "[yellow]stopped[/yellow]",
        ServiceStatus.NOT_INSTALLED: "[dim]not installed[/dim]",
    }

    installed = "[green]✓[/green]" if binary.is_file() else "[red]✗[/red]"
    console.print(f"Binary:       {binary} {installed}")
    console.print(f"Service:      {status_styles[info.status]}")
    if info.pid:
        console.print(f"PID:          {info.pid}")
    if info.service_file:
        console.print(f"Service file: {info.service_file}")
    if info.log_path:
        console.print(f"Logs:         {info.log_path}")


if __name__ == "__main__":
    app()
