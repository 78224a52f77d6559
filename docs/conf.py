"""Sphinx configuration for the httprex documentation."""

import os
import sys

sys.path.insert(0, os.path.abspath("../src"))

project = "httprex"
version = "0.1.0"
release = "0.1.0"

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.napoleon",
    "sphinx.ext.viewcode",
    "sphinx.ext.intersphinx",
    "myst_parser",
    "sphinx_copybutton",
]

exclude_patterns = ["_build"]

# -- Theme -------------------------------------------------------------------
html_theme = "furo"
html_title = "httprex"
html_theme_options = {
    "navigation_with_keys": True,
}

# -- Autodoc -----------------------------------------------------------------
autodoc_default_options = {
    "members": True,
    "show-inheritance": True,
}
autodoc_member_order = "bysource"
autodoc_typehints = "description"
# optional provider backends
autodoc_mock_imports = ["boto3", "botocore", "hvac"]

# -- Napoleon ----------------------------------------------------------------
napoleon_google_docstring = True
napoleon_numpy_docstring = False
napoleon_include_init_with_doc = True

intersphinx_mapping = {
    "python": ("https://docs.python.org/3", None),
    "httpx": ("https://www.python-httpx.org", None),
}

source_suffix = {
    ".rst": "restructuredtext",
    ".md": "markdown",
}

copybutton_prompt_text = r">>> |\.\.\. |\$ "
copybutton_prompt_is_regexp = True
