"""HTTP service hosting quiz-taking sessions."""
