"""AI Gateway: upstream generative-AI orchestration for Azure Functions.

Relays streaming chat completions to an OpenAI-compatible upstream,
drives asynchronous image-generation tasks to completion with an
adaptively paced poller, and keeps a short-lived per-session document
context for document-augmented questions.
"""

__version__ = "0.1.0"
