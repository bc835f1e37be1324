"""
Command-Line Interface for P-touch Printers.

Usage:
    ptouch print IMAGE [-d DEVICE] [-t TAPE]  - Print an image
    ptouch status [-d DEVICE]                 - Show printer status
    ptouch drivers                            - List transport drivers
    ptouch forget                             - Forget the remembered device
"""

import sys
from typing import Optional

import click

from .cache import clear_cache, load_cached_device, save_device
from .connection import default_registry, resolve_driver
from .errors import (
    ConnectionError,
    ImageError,
    PrintError,
    PrinterError,
)
from .image import ImageRasterizer
from .printer import DEFAULT_FEED_AMOUNT, DEFAULT_TAPE_WIDTH, PTouchPrinter, check_tape_width

DEFAULT_DEVICE = "/dev/rfcomm0"
TAPE_CHOICES = ["3.5", "6", "9", "12", "18", "24", "62"]


def resolve_device(device: Optional[str], driver: Optional[str]) -> tuple[str, str]:
    """Work out (driver, address) from options, the cache, or the default device.

    Args:
        device: --device value, if given
        driver: --driver value, if given

    Returns:
        (driver name, driver address)
    """
    if device is None:
        cached = load_cached_device()
        if cached is not None and driver in (None, cached.driver):
            return cached.driver, cached.address
        device = DEFAULT_DEVICE

    if driver is None:
        return resolve_driver(device)
    return driver, device


def resolve_tape(tape: Optional[str]) -> float:
    """Tape width in mm from --tape, the cache, or the default."""
    if tape is not None:
        return float(tape)
    cached = load_cached_device()
    if cached is not None:
        return cached.tape_width
    return DEFAULT_TAPE_WIDTH.mm


def device_options(f):
    """Shared --device/--driver options."""
    f = click.option(
        "--driver",
        help="Transport driver (serial, tcp, usb); guessed from the device if omitted",
    )(f)
    f = click.option(
        "--device",
        "-d",
        help='Device path (RFCOMM/serial), "usb", "usb:0xPPPP" or "tcp://host:port"',
    )(f)
    return f


def fail(prefix: str, error: Exception):
    click.echo(f"{prefix}: {error}", err=True)
    sys.exit(1)


@click.group()
@click.option("--debug/--no-debug", default=False, help="Enable debug output")
@click.pass_context
def main(ctx, debug):
    """Brother P-touch Label Printer CLI."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    if "registry" not in ctx.obj:
        ctx.obj["registry"] = default_registry()


@main.command("print")
@click.argument("image", type=click.Path(exists=True, dir_okay=False))
@device_options
@click.option("--tape", "-t", type=click.Choice(TAPE_CHOICES), help="Tape width in mm")
@click.option("--compress/--no-compress", default=True, help="PackBits-compress raster lines")
@click.option("--autocut/--no-autocut", default=True, help="Cut after the label")
@click.option(
    "--feed",
    type=click.IntRange(0, 65535),
    default=DEFAULT_FEED_AMOUNT,
    help=f"Feed amount in dots (default {DEFAULT_FEED_AMOUNT})",
)
@click.option("--check-status", is_flag=True, help="Refuse to print if the printer reports an error")
@click.option("--dry-run", is_flag=True, help="Set up the printer without printing")
@click.pass_context
def print_image(ctx, image, device, driver, tape, compress, autocut, feed, check_status, dry_run):
    """Print an image file.

    One side of the image must match the 720px raster width; it is rotated
    or mirrored for the print head as needed.
    """
    debug = ctx.obj["debug"]
    driver, address = resolve_device(device, driver)

    try:
        tape_width = check_tape_width(resolve_tape(tape))

        rasterizer = ImageRasterizer()
        raster, _ = rasterizer.rasterize(rasterizer.load(image))
        if debug:
            click.echo(raster.dump())
            click.echo("Image loaded")

        click.echo(f"Connecting to {address or driver}...")
        printer = PTouchPrinter(
            ctx.obj["registry"].open(driver, address),
            tape_width=tape_width,
            debug=debug,
        )
    except ImageError as e:
        fail("Image error", e)
    except ConnectionError as e:
        fail("Connection error", e)
    except PrinterError as e:
        fail("Error", e)

    try:
        click.echo(f"Printing {image} on {tape_width.label} tape...")
        lines = printer.print_image(
            raster,
            compressed=compress,
            autocut=autocut,
            feed_amount=feed,
            check_status=check_status,
            dry_run=dry_run,
        )
        if dry_run:
            click.echo(f"Dry run complete ({lines} raster lines)")
        else:
            save_device(driver, address, tape_width.mm)
            click.echo(f"Print complete! ({lines} raster lines)")
    except ConnectionError as e:
        fail("Connection error", e)
    except PrintError as e:
        fail("Print error", e)
    except PrinterError as e:
        fail("Printer error", e)
    finally:
        printer.close()


@main.command()
@device_options
@click.pass_context
def status(ctx, device, driver):
    """Show the printer status."""
    driver, address = resolve_device(device, driver)

    try:
        printer = PTouchPrinter(ctx.obj["registry"].open(driver, address), debug=ctx.obj["debug"])
    except ConnectionError as e:
        fail("Connection error", e)
    except PrinterError as e:
        fail("Error", e)

    try:
        click.echo(str(printer.get_status()))
    except ConnectionError as e:
        fail("Connection error", e)
    except PrinterError as e:
        fail("Printer error", e)
    finally:
        printer.close()


@main.command()
@click.pass_context
def drivers(ctx):
    """List available transport drivers."""
    for name in ctx.obj["registry"].names():
        click.echo(name)


@main.command()
def forget():
    """Forget the remembered device."""
    if clear_cache():
        click.echo("Remembered device cleared.")
    else:
        click.echo("No remembered device.")


if __name__ == "__main__":
    main()
