"""dotsync keeps a workstation's tools, packages and fonts in a declared state."""
