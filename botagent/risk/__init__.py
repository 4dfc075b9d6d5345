"""Risk controls: position guard, drawdown kill switch and dry-run mode."""

__all__ = ["dryrun", "guard", "killswitch"]