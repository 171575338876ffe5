"""
Curator - Batch synchronization of git repositories.

Clones and pulls a configured set of repositories from an origin or a
mirror hosting provider, and configures every clone to push to both.
"""

__version__ = "1.0.0"
__description__ = "Batch clone and pull of git repositories across two hosting providers"
