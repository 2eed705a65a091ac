"""Local Volume Agent: LVM-backed block volumes for container orchestrators."""

__version__ = "0.2.0"
