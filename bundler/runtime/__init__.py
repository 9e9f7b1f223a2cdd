# minipack runtime
"""
The JavaScript loader that gets inlined into every bundle.

It lives in a real .js file so it can be read, linted and tested as
JavaScript, and is read back as text at bundle time.
"""

import os

LOADER_FILE = 'loader.js'


def get_loader():
    """
    Return the loader source: a named function expression

        function minipackLoad(modules, entry, cache) { ... }

    taking the module table, the entry id and the cache flag.
    """
    runtime_dir = os.path.dirname(__file__)
    with open(os.path.join(runtime_dir, LOADER_FILE), 'r') as f:
        return f.read().strip()
