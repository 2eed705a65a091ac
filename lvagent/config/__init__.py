from .manager import AgentContext, ConfigManager

__all__ = ["AgentContext", "ConfigManager"]
