"""
Redmine REST API Connector

Resolves the calling user and self-assigns an issue. Every call is a single
request/response with no retries: the first failure is reported as a
RemoteError and ends the session.
"""

import requests
from typing import Dict, Optional, Any
from dataclasses import dataclass
import logging

from issuesmonitor.errors import RemoteError
from issuesmonitor.session.record import User

logger = logging.getLogger(__name__)

IN_PROGRESS_STATUS_ID = "2"


@dataclass(frozen=True)
class IssueSnapshot:
    """Issue fields captured at assignment time"""
    issue_id: int
    subject: str
    estimated_hours: Optional[float]
    classification: str
    parent_id: Optional[int]

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "IssueSnapshot":
        """Build from a GET /issues/{id}.json payload."""
        issue = data["issue"]
        custom_fields = issue.get("custom_fields") or []
        classification = (custom_fields[0].get("value") or "") if custom_fields else ""
        parent = issue.get("parent") or {}
        estimated = issue.get("estimated_hours")
        return cls(
            issue_id=int(issue["id"]),
            subject=issue.get("subject", ""),
            estimated_hours=float(estimated) if estimated is not None else None,
            classification=str(classification),
            parent_id=int(parent["id"]) if parent.get("id") else None,
        )


@dataclass(frozen=True)
class Assignment:
    """Result of a successful self-assignment"""
    user: User
    issue: IssueSnapshot


class RedmineConnector:
    """
    Redmine API connector

    Authenticates with the X-Redmine-API-Key header and exchanges JSON
    bodies. The connector never touches session state; it only returns
    what the tracker reported.
    """

    def __init__(self, api_key: str, base_url: str, timeout: Optional[float] = None):
        """
        Initialize Redmine connector

        Args:
            api_key: Redmine API key of the calling user
            base_url: Redmine base URL, e.g. https://redmine.example.com
            timeout: Optional request timeout in seconds; unset waits indefinitely
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = {
            "X-Redmine-API-Key": api_key,
            "Accept": "application/json",
        }

    def who_am_i(self) -> User:
        """
        Resolve the user owning the API key

        Returns:
            The current user

        Raises:
            RemoteError: On transport failure or non-success status
        """
        url = f"{self.base_url}/users/current.json"
        data = self._request("GET", url, f"could not get user data from Redmine {url}")
        try:
            user = data["user"]
            return User(
                id=int(user["id"]),
                first_name=user.get("firstname", ""),
                last_name=user.get("lastname", ""),
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise RemoteError(f"could not get user data from Redmine {url}: unexpected payload {e!r}", url=url) from e

    def get_issue(self, issue_id: int) -> IssueSnapshot:
        """
        Fetch the current estimate, classification and parent of an issue

        Raises:
            RemoteError: On transport failure or non-success status
        """
        url = self._issue_url(issue_id)
        context = f"could not get data of the issue {issue_id}"
        data = self._request("GET", url, context)
        try:
            return IssueSnapshot.from_response(data)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise RemoteError(f"{context}: unexpected payload {e!r}", url=url) from e

    def assign(self, issue_id: int, project_id: str, user: User) -> IssueSnapshot:
        """
        Mark an issue in progress and assign it to user

        Args:
            issue_id: Redmine issue ID
            project_id: Project the issue belongs to
            user: Assignee

        Returns:
            The issue as it was before the update

        Raises:
            RemoteError: On transport failure or non-success status
        """
        context = f"could not assign the issue {issue_id} to user with id {user.id}"
        try:
            snapshot = self.get_issue(issue_id)
        except RemoteError as e:
            raise RemoteError(f"{context}: {e}", url=e.url, status=e.status, body=e.body) from e

        payload = {
            "issue": {
                "project_id": project_id,
                "status_id": IN_PROGRESS_STATUS_ID,
                "assigned_to": {"id": user.id},
                "assigned_to_id": user.id,
            }
        }
        self._request("PUT", self._issue_url(issue_id), context, json_body=payload)
        logger.info(f"Assigned issue #{issue_id} to {user.first_name} {user.last_name} (id {user.id})")
        return snapshot

    def assign_to_self(self, issue_id: int, project_id: str) -> Assignment:
        """Look up the current user, then assign the issue to them."""
        user = self.who_am_i()
        logger.debug(f"Resolved current user id {user.id}")
        issue = self.assign(issue_id, project_id, user)
        return Assignment(user=user, issue=issue)

    def _issue_url(self, issue_id: int) -> str:
        return f"{self.base_url}/issues/{issue_id}.json"

    def _request(
        self,
        method: str,
        url: str,
        context: str,
        json_body: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Send one request and decode the JSON response body, if any."""
        try:
            response = requests.request(
                method, url, headers=self.headers, json=json_body, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise RemoteError(f"{context}: {e}", url=url) from e

        logger.debug(f"{method} {url} -> {response.status_code}")
        if response.status_code >= 300:
            raise RemoteError.from_response(context, url, response.status_code, response.text)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise RemoteError(f"{context}: invalid JSON response: {e}", url=url) from e
