"""AgileAiAgents project dashboard API."""
