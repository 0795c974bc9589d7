"""Entry point for ``python -m swarm_updater``."""

from swarm_updater.main import run

if __name__ == "__main__":
    run()
