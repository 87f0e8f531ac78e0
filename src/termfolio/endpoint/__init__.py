"""Web terminal endpoint for termfolio.

Hosts one portfolio terminal rendered into an in-memory screen and
exposes it over HTTP, so a browser (or a test) can type into it and read
back what it shows.
"""
