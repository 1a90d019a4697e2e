"""
hardensync - forward-port a downstream hardening patch series onto upstream releases.

Tools included:
- rebase: bootstrap the upstream clone and replay the patch series onto a tag
- push-user / push-rancher: publish the resulting hardened branch
"""

__version__ = "0.1.0"
__all__ = ["cli", "config", "errors", "naming", "patches", "publish", "sync"]
