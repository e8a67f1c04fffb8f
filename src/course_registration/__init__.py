"""Event-sourced course-registration sessions."""
