"""FlowForm conversational form engine."""
