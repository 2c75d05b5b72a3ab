"""Render an image URL as a reference suited to the target document's language."""

from enum import Enum


class ReferenceKind(str, Enum):
    """How an image reference is written into a document."""

    HTML_TAG = "html_tag"
    MARKDOWN = "markdown"
    CSS_URL = "css_url"
    QUOTED = "quoted"
    PLAIN = "plain"


TEMPLATES: dict[ReferenceKind, str] = {
    ReferenceKind.HTML_TAG: '<img src="{url}" alt="{name}" />',
    ReferenceKind.MARKDOWN: "![{name}]({url})",
    ReferenceKind.CSS_URL: "url('{url}')",
    ReferenceKind.QUOTED: '"{url}"',
    ReferenceKind.PLAIN: "{url}",
}

LANGUAGE_KINDS: dict[str, ReferenceKind] = {
    # Markup and component templates
    "html": ReferenceKind.HTML_TAG,
    "php": ReferenceKind.HTML_TAG,
    "vue": ReferenceKind.HTML_TAG,
    "svelte": ReferenceKind.HTML_TAG,
    "jsx": ReferenceKind.HTML_TAG,
    "tsx": ReferenceKind.HTML_TAG,
    "markdown": ReferenceKind.MARKDOWN,
    # Stylesheets
    "css": ReferenceKind.CSS_URL,
    "scss": ReferenceKind.CSS_URL,
    "sass": ReferenceKind.CSS_URL,
    "less": ReferenceKind.CSS_URL,
    # Data and source files get a string literal
    "json": ReferenceKind.QUOTED,
    "jsonc": ReferenceKind.QUOTED,
    "javascript": ReferenceKind.QUOTED,
    "typescript": ReferenceKind.QUOTED,
    "javascriptreact": ReferenceKind.QUOTED,
    "typescriptreact": ReferenceKind.QUOTED,
    "python": ReferenceKind.QUOTED,
    "ruby": ReferenceKind.QUOTED,
    "go": ReferenceKind.QUOTED,
    "rust": ReferenceKind.QUOTED,
    "java": ReferenceKind.QUOTED,
    "csharp": ReferenceKind.QUOTED,
    "cpp": ReferenceKind.QUOTED,
    "c": ReferenceKind.QUOTED,
    "plaintext": ReferenceKind.PLAIN,
}

SUPPORTED_LANGUAGES = tuple(LANGUAGE_KINDS)


def reference_kind(language_id: str) -> ReferenceKind:
    """Kind used for a language id; unknown languages get the bare URL."""
    return LANGUAGE_KINDS.get(language_id.lower(), ReferenceKind.PLAIN)


def format_image_reference(url: str, file_name: str, language_id: str) -> str:
    """
    Format an image URL for insertion into a document.

    Args:
        url: Delivery URL of the image
        file_name: Name used as alt text where the format has one
        language_id: Editor language id of the document (e.g. 'markdown', 'css')

    Returns:
        The formatted reference

    Example:
        >>> format_image_reference("https://x/y", "a.png", "markdown")
        '![a.png](https://x/y)'
    """
    return TEMPLATES[reference_kind(language_id)].format(url=url, name=file_name)
