"""Tubely: video upload and aspect-ratio classification service."""
