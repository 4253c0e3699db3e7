"""Common literal values used across grove_pages.

These constants keep reserved data keys, directive syntax, and output file
names centralized so templates, the evaluator, and tests can import the same
values without drifting. Intended for internal use within the grove_pages
package.

Examples
--------
>>> from grove_pages import _constants
>>> _constants.EACH_INDEX
'each/index'
>>> _constants.BROKEN_LINK_HREF.format(key="about")
'#broken-link/about'
"""

DIRECTIVE_PREFIX = "@"
ALL_CONTENT_MARKER = "@all"

RAW_HTML_NAMESPACE = "html/"

EACH_INDEX = "each/index"
EACH_KEY = "each/key"
EACH_VALUE = "each/value"
EACH_GROUP_KEY = "each/group_key"
EACH_GROUP_ITEMS = "each/group_items"

LINK_HREF = "link/href"
LINK_TITLE = "link/title"

CONTENT_KEY_FIELD = "content_key"
HIERARCHY_SEPARATOR = "."

BROKEN_LINK_HREF = "#broken-link/{key}"
MISSING_TRANSLATION_TEMPLATE = "### {key} ###"

MANIFEST_FILENAME = ".grove-manifest.json"
REPORT_FILENAME = "_report.html"

ASSETS_DIRNAME = "assets"
BUNDLED_ASSET_DIRS = frozenset({"css", "js"})
