"""CourseHub: course content API with token-gated administration."""

__version__ = "0.3.0"
