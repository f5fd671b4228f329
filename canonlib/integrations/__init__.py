from canonlib.integrations.committer import Committer, GitCommitter, NullCommitter
from canonlib.integrations.alerts import IssueReporter, GitHubIssueReporter, LogIssueReporter

__all__ = [
    "Committer", "GitCommitter", "NullCommitter",
    "IssueReporter", "GitHubIssueReporter", "LogIssueReporter",
]
