"""termfolio -- a terminal-style portfolio with an interactive account system.

The package renders a line-editing terminal (locally on a TTY, or in
memory behind an HTTP endpoint for a browser) whose prompt reflects the
signed-in account. Signup, login and logout run as modal, multi-field
forms inside the same input stream as ordinary commands.
"""

__version__ = "0.1.0"
