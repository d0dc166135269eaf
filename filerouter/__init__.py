"""
filerouter - suggests where a file belongs inside a project's folder template.
"""

__version__ = "0.1.0"
__logo__ = "📁"
