"""Generative UI for streamed model output."""
