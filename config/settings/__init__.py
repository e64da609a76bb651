"""Per-environment settings.

``base`` holds everything shared; ``dev``, ``test`` and ``prod`` override
database, mail, cache and logging for their environment.
"""
