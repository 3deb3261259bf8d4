"""
webshot - Capture, store and re-encode web page screenshots.

webshot drives an external renderer (gowitness by default) to capture a page,
files the result under a random identifier in a date-partitioned tree, and
serves it back on demand:
- take_screenshot: capture a URL, optionally returning the image inline
- list_screenshots: enumerate stored captures, newest first
- get_screenshot_info: describe one capture by id
- view_screenshot: return a capture re-encoded for viewing

Example usage:
    $ webshot take https://example.com
    $ webshot list --limit 10
    $ webshot view <screenshot_id> --out shot.jpg
"""

__version__ = "0.1.0"
__author__ = "webshot Contributors"

__all__ = [
    "__version__",
    "__author__",
]
