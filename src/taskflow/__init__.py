"""TaskFlow: multi-user task management API with PDF attachments."""

__version__ = "1.0.0"
