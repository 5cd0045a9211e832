# stockbot/base_utils.py

import logging
import math

logger = logging.getLogger("stockbot")


COLOR_CODES = {
    'black': '30', 'red': '31', 'green': '32', 'yellow': '33', 'blue': '34', 'magenta': '35',
    'cyan': '36', 'white': '37', 'bright_black': '90', 'bright_red': '91', 'bright_green': '92',
    'bright_yellow': '93', 'bright_blue': '94', 'bright_magenta': '95', 'bright_cyan': '96', 'bright_white': '97'
}


def color_print(text, color=None):
    if color and color.lower() in COLOR_CODES:
        color_code = COLOR_CODES[color.lower()]
        text = f"\033[{color_code}m{text}\033[0m"
    logger.info(str(text))
    return False


# -----------------------
# Display helpers
# -----------------------

def format_quantity(value) -> str:
    """
    pt-BR number rendering: 4500 -> '4.500', 1234.5 -> '1.234,5'.
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        return str(value)
    if not math.isfinite(number):
        return str(value)

    if number.is_integer():
        text = f"{int(number):,}"
    else:
        text = f"{number:,.3f}".rstrip("0").rstrip(".")
    # swap separators: 1,234.5 -> 1.234,5
    return text.replace(",", "\0").replace(".", ",").replace("\0", ".")


def readable_item(item_id: str) -> str:
    return item_id.replace("_", " ").upper()


def format_line_items(items: dict) -> str:
    return "\n".join(
        f"**{readable_item(item)}**: {format_quantity(qty)}"
        for item, qty in items.items()
    )
