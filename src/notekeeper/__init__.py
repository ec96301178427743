"""Keeps short text notes, each stored as a JSON file in a single folder.

If you installed via ``pip``, run ``notekeeper -h`` to get help.
Or, run ``python3 -m notekeeper -h``.

To use the Python API, look at :class:`notekeeper.api.Notekeeper`
"""
