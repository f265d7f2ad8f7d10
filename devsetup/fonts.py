from urllib.parse import unquote

import requests

from devsetup import commands, net
from devsetup.config import MACOS, SetupContext
from devsetup.errors import StepFailure
from devsetup.ui import print_success, print_warning


def font_file_name(url: str) -> str:
    return unquote(url.rsplit("/", 1)[-1])


def install_fonts(ctx: SetupContext) -> bool:
    """Install the MesloLGS NF fonts used by the Powerlevel10k theme."""
    config, logger = ctx.config, ctx.logger
    font_dir = config.font_dir
    try:
        font_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StepFailure(f"Failed to create fonts directory {font_dir}: {e}")

    present = 0
    for url in config.FONT_URLS:
        name = font_file_name(url)
        path = font_dir / name
        if path.is_file() and path.stat().st_size > 0:
            logger.info(f"{name} already exists, skipping...")
            present += 1
            continue
        logger.info(f"Downloading {name}...")
        try:
            net.download_file(url, path, timeout=config.DOWNLOAD_TIMEOUT)
        except (requests.RequestException, OSError) as e:
            logger.warning(f"Failed to download {name}: {e}")
            print_warning(f"Failed to download {name}")
            continue
        print_success(f"{name} installed")
        present += 1

    if present == 0:
        raise StepFailure("Failed to install any fonts")

    if config.PLATFORM != MACOS:
        if commands.command_exists("fc-cache"):
            if not commands.succeeds(["fc-cache", "-f"]):
                logger.warning("Failed to refresh font cache")
        else:
            logger.warning("fc-cache not found - fonts may not be immediately available")

    logger.info(
        f"MesloLGS NF fonts installation completed ({present}/{len(config.FONT_URLS)} fonts)"
    )
    return True
