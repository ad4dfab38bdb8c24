"""Rendered location of a document identifier"""

OUTPUT_SUFFIX = {'html': '.html', 'md': '.md'}


def output_path(identifier: str, fmt: str = 'html') -> str:
    """Return the output file path for identifier, relative to the output directory."""
    return f"{identifier}{OUTPUT_SUFFIX[fmt]}"


def url_for(identifier: str, base_url: str = '', fmt: str = 'html', fragment: str = '') -> str:
    """Return the URL a page is served at: base_url + '/' + output path (+ '#fragment')."""
    url = f"{base_url.rstrip('/')}/{output_path(identifier, fmt)}"
    return f"{url}#{fragment}" if fragment else url
