from rich.console import Console
from rich.text import Text

UPBOUND_BRAND_STYLE = "#af7efd"
INACTIVE_SEGMENT_STYLE = "#9a9ca7"


# Singleton Console instance
def get_console() -> Console:
    if not hasattr(get_console, "_console"):
        get_console._console = Console()
    return get_console._console


# Console bound to stderr
def get_error_console() -> Console:
    if not hasattr(get_error_console, "_console"):
        get_error_console._console = Console(stderr=True)
    return get_error_console._console


def print_error(message: str) -> None:
    """Print an error message in red to stderr."""
    get_error_console().print(Text(message, style="bold red"))


def styled_breadcrumbs(breadcrumbs: str) -> Text:
    """Render a breadcrumb string with the brand colour on the leading "Upbound" label.

    The last path segment keeps the default style, earlier segments are dimmed.
    """
    text = Text()
    head, _, rest = breadcrumbs.partition(" ")
    text.append(head, style=UPBOUND_BRAND_STYLE)
    if not rest:
        return text
    text.append(" ")
    segments = rest.split("/")
    for index, segment in enumerate(segments):
        last = index == len(segments) - 1
        suffix = "" if last else "/"
        if last and segment:
            text.append(segment)
        else:
            text.append(segment + suffix, style=INACTIVE_SEGMENT_STYLE)
    return text
