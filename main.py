"""Entry point for the interactive double pendulum viewer.

Installed as ``pendulum-viewer``. Offline recurrence renders are produced
by ``python -m recurrence.render``.
"""

from viewer.view import run


if __name__ == "__main__":
    run()
