"""orgolin - Orgo virtual desktop session CLI

Philosophy:
- Ruthless simplicity
- Brick architecture (self-contained modules)
- Security by design (no credentials in code or config files)
- Fail fast with helpful guidance

orgolin connects to a remote, billable Orgo virtual desktop, keeps a single
live session healthy across restarts, and runs shell commands or natural
language instructions against it.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
