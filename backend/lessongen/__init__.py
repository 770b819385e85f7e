"""lessongen — outline-to-lesson generation service."""
