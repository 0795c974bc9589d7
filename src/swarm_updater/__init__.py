"""Rolling image updates for Docker Swarm services.

Periodically sweeps the swarm's services, resolves the current registry
digest for each eligible service image and asks the orchestrator to roll
the service onto it. The updater's own service is always updated last.
"""

__version__ = "1.0.0"
