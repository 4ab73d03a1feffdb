import click
import structlog

logger = structlog.get_logger()


def compose(editor: str) -> str:
    """Open ``editor`` on an empty buffer and return what was written.

    Returns an empty string when the editor exits without saving.
    """
    text = click.edit("", editor=editor, extension=".txt", require_save=True)
    if text is None:
        logger.info("compose_cancelled", editor=editor)
        return ""
    return text.strip()
