"""Task approval workflow: tasks, team roster and projects."""
