"""User and team lookup.

Picks the narrowest GraphQL query for the requested combination of
parameters and renders the result as indented plain text.
"""

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from claude_agent_sdk import tool

from monday_mcp.toolkit.http import MondayAPIClient, get_http_client
from monday_mcp.toolkit.tools.common import _safe_call, _validate

logger = logging.getLogger("monday_mcp.toolkit.tools.users_and_teams")

MAX_USER_IDS = 500
MAX_TEAM_IDS = 500
DEFAULT_USER_LIMIT = 1000

NO_RESULTS_MESSAGE = "No users or teams found with the specified filters."

USER_DETAILS_FRAGMENT = """
fragment UserDetails on User {
  id
  name
  title
  email
  enabled
  is_admin
  is_guest
  is_pending
  is_verified
  is_view_only
  join_date
  last_activity
  location
  mobile_phone
  phone
  photo_thumb
  time_zone_identifier
  utc_hours_diff
}
"""

USER_TEAM_MEMBERSHIP_FRAGMENT = """
fragment UserTeamMembership on Team {
  id
  name
  is_guest
  picture_url
}
"""

USER_TEAM_MEMBERSHIP_SIMPLIFIED_FRAGMENT = """
fragment UserTeamMembershipSimplified on Team {
  id
  name
  is_guest
}
"""

TEAM_BASIC_INFO_FRAGMENT = """
fragment TeamBasicInfo on Team {
  id
  name
}
"""

TEAM_EXTENDED_INFO_FRAGMENT = """
fragment TeamExtendedInfo on Team {
  ...TeamBasicInfo
  is_guest
  picture_url
}
"""

TEAM_OWNER_FRAGMENT = """
fragment TeamOwner on User {
  id
  name
  email
}
"""

TEAM_MEMBER_FRAGMENT = """
fragment TeamMember on User {
  id
  name
  email
  title
  is_admin
  is_guest
  is_pending
  is_verified
  is_view_only
  join_date
  last_activity
  location
  mobile_phone
  phone
  photo_thumb
  time_zone_identifier
  utc_hours_diff
}
"""

TEAM_MEMBER_SIMPLIFIED_FRAGMENT = """
fragment TeamMemberSimplified on User {
  id
  name
  email
  title
  is_admin
  is_guest
}
"""

LIST_USERS_WITH_TEAMS_QUERY = USER_DETAILS_FRAGMENT + USER_TEAM_MEMBERSHIP_FRAGMENT + """
query listUsersWithTeams($userIds: [ID!], $limit: Int = 1000) {
  users(ids: $userIds, limit: $limit) {
    ...UserDetails
    teams {
      ...UserTeamMembership
    }
  }
}
"""

LIST_USERS_ONLY_QUERY = USER_DETAILS_FRAGMENT + USER_TEAM_MEMBERSHIP_FRAGMENT + """
query listUsersOnly($userIds: [ID!], $limit: Int = 1000) {
  users(ids: $userIds, limit: $limit) {
    ...UserDetails
    teams {
      ...UserTeamMembership
    }
  }
}
"""

LIST_USERS_AND_TEAMS_QUERY = (
    USER_DETAILS_FRAGMENT
    + USER_TEAM_MEMBERSHIP_SIMPLIFIED_FRAGMENT
    + TEAM_EXTENDED_INFO_FRAGMENT
    + TEAM_BASIC_INFO_FRAGMENT
    + TEAM_OWNER_FRAGMENT
    + TEAM_MEMBER_SIMPLIFIED_FRAGMENT
    + """
query listUsersAndTeams($userIds: [ID!], $teamIds: [ID!], $limit: Int = 1000) {
  users(ids: $userIds, limit: $limit) {
    ...UserDetails
    teams {
      ...UserTeamMembershipSimplified
    }
  }
  teams(ids: $teamIds) {
    ...TeamExtendedInfo
    owners {
      ...TeamOwner
    }
    users {
      ...TeamMemberSimplified
    }
  }
}
"""
)

LIST_TEAMS_ONLY_QUERY = TEAM_BASIC_INFO_FRAGMENT + """
query listTeamsOnly($teamIds: [ID!]) {
  teams(ids: $teamIds) {
    ...TeamBasicInfo
  }
}
"""

LIST_TEAMS_WITH_MEMBERS_QUERY = (
    TEAM_EXTENDED_INFO_FRAGMENT
    + TEAM_BASIC_INFO_FRAGMENT
    + TEAM_OWNER_FRAGMENT
    + TEAM_MEMBER_FRAGMENT
    + """
query listTeamsWithMembers($teamIds: [ID!]) {
  teams(ids: $teamIds) {
    ...TeamExtendedInfo
    owners {
      ...TeamOwner
    }
    users {
      ...TeamMember
    }
  }
}
"""
)

GET_USER_BY_NAME_QUERY = USER_DETAILS_FRAGMENT + USER_TEAM_MEMBERSHIP_FRAGMENT + """
query getUserByName($name: String) {
  users(name: $name) {
    ...UserDetails
    teams {
      ...UserTeamMembership
    }
  }
}
"""

GET_CURRENT_USER_QUERY = """
query getCurrentUser {
  me {
    id
    name
    title
    enabled
    is_admin
    is_guest
    photo_thumb
  }
}
"""


# --- Input Models ---


class ListUsersAndTeamsInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_ids: list[str] | None = Field(
        None,
        alias="userIds",
        max_length=MAX_USER_IDS,
        description=(
            "Specific user IDs to fetch.[IMPORTANT] ALWAYS use when you have user IDs in context. "
            "PREFER over general search. RETURNS: user profiles including team memberships"
        ),
    )
    team_ids: list[str] | None = Field(
        None,
        alias="teamIds",
        max_length=MAX_TEAM_IDS,
        description=(
            "Specific team IDs to fetch.[IMPORTANT] ALWAYS use when you have team IDs in context, "
            "NEVER fetch all teams if specific IDs are available.\n"
            "RETURNS: Team details with owners and optional member data."
        ),
    )
    name: str | None = Field(
        None,
        description=(
            "Name-based USER search ONLY. STANDALONE parameter - cannot be combined with others. "
            "PREFERRED method for finding users when you know names. Performs fuzzy matching.\n"
            "CRITICAL: This parameter searches for USERS ONLY, NOT teams. To search for teams, "
            "use teamIds parameter instead."
        ),
    )
    get_me: bool | None = Field(
        None,
        alias="getMe",
        description=(
            "[TOP PRIORITY] Use ALWAYS when requesting current user information. Examples of when "
            'it should be used: ["get my user" or "get my teams"].\n'
            "This parameter CONFLICTS with all others."
        ),
    )
    include_teams: bool | None = Field(
        None,
        alias="includeTeams",
        description=(
            "[AVOID] This fetches all teams in the account. To fetch a specific user's teams just "
            "fetch that user by id and you will get their team memberships."
        ),
    )
    teams_only: bool | None = Field(
        None,
        alias="teamsOnly",
        description="Fetch only teams, no users returned. Combine with includeTeamMembers for member details.",
    )
    include_team_members: bool | None = Field(
        None,
        alias="includeTeamMembers",
        description="Set to true only when you need additional member details for teams other than names and ids.",
    )


# --- Formatting ---

# (field, label) pairs printed only when the API returned a value
OPTIONAL_USER_FIELDS = (
    ("is_pending", "Pending"),
    ("is_verified", "Verified"),
    ("is_view_only", "View Only"),
    ("join_date", "Join Date"),
    ("last_activity", "Last Activity"),
    ("location", "Location"),
    ("mobile_phone", "Mobile Phone"),
    ("phone", "Phone"),
    ("photo_thumb", "Photo Thumb"),
    ("time_zone_identifier", "Timezone"),
    ("utc_hours_diff", "UTC Hours Diff"),
)


def _fmt(value: Any) -> str:
    """Render a GraphQL scalar the way the API spells it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def _optional_user_fields(user: dict[str, Any], prefix: str = "") -> list[str]:
    return [
        f"{prefix}{label}: {_fmt(user[field])}"
        for field, label in OPTIONAL_USER_FIELDS
        if user.get(field) is not None
    ]


def _format_user(user: dict[str, Any]) -> list[str]:
    lines = [
        f"  ID: {_fmt(user.get('id'))}",
        f"  Name: {_fmt(user.get('name'))}",
        f"  Email: {_fmt(user.get('email'))}",
        f"  Title: {user.get('title') or 'N/A'}",
        f"  Enabled: {_fmt(user.get('enabled'))}",
        f"  Admin: {_fmt(user.get('is_admin') or False)}",
        f"  Guest: {_fmt(user.get('is_guest') or False)}",
    ]
    lines.extend(_optional_user_fields(user, "  "))

    teams = [team for team in user.get("teams") or [] if team]
    if teams:
        lines.append("  Teams:")
        for team in teams:
            lines.append(
                f"    - ID: {_fmt(team.get('id'))}, Name: {_fmt(team.get('name'))}, "
                f"Guest Team: {_fmt(team.get('is_guest') or False)}, "
                f"Picture URL: {team.get('picture_url') or 'N/A'}"
            )
    lines.append("")
    return lines


def _format_team(team: dict[str, Any]) -> list[str]:
    lines = [f"  ID: {_fmt(team.get('id'))}", f"  Name: {_fmt(team.get('name'))}"]

    # Extended teams carry owners and member details
    if "owners" in team:
        lines.append(f"  Guest Team: {_fmt(team.get('is_guest') or False)}")
        lines.append(f"  Picture URL: {team.get('picture_url') or 'N/A'}")

        owners = [owner for owner in team.get("owners") or [] if owner]
        if owners:
            lines.append("  Owners:")
            for owner in owners:
                lines.append(
                    f"    - ID: {_fmt(owner.get('id'))}, Name: {_fmt(owner.get('name'))}, "
                    f"Email: {_fmt(owner.get('email'))}"
                )

        members = [member for member in team.get("users") or [] if member]
        if members:
            lines.append("  Members:")
            for member in members:
                details = [
                    f"ID: {_fmt(member.get('id'))}",
                    f"Name: {_fmt(member.get('name'))}",
                    f"Email: {_fmt(member.get('email'))}",
                    f"Title: {member.get('title') or 'N/A'}",
                    f"Admin: {_fmt(member.get('is_admin') or False)}",
                    f"Guest: {_fmt(member.get('is_guest') or False)}",
                    *_optional_user_fields(member),
                ]
                lines.append(f"    - {', '.join(details)}")
    lines.append("")
    return lines


def format_users_and_teams(data: dict[str, Any]) -> str:
    sections: list[str] = []

    users = [user for user in data.get("users") or [] if user]
    if users:
        sections.append("Users:")
        for user in users:
            sections.extend(_format_user(user))

    teams = [team for team in data.get("teams") or [] if team]
    if teams:
        sections.append("Teams:")
        for team in teams:
            sections.extend(_format_team(team))

    if not sections:
        return NO_RESULTS_MESSAGE
    return "\n".join(sections).strip()


# --- Tool ---


async def run_list_users_and_teams(client: MondayAPIClient, params: ListUsersAndTeamsInput) -> str:
    has_user_ids = bool(params.user_ids)
    has_team_ids = bool(params.team_ids)
    include_teams = bool(params.include_teams)
    teams_only = bool(params.teams_only)
    include_team_members = bool(params.include_team_members)
    has_name = bool(params.name)

    if params.get_me:
        if has_user_ids or has_team_ids or include_teams or teams_only or include_team_members or has_name:
            return (
                "PARAMETER_CONFLICT: getMe is STANDALONE only. Remove all other parameters when "
                "using getMe: true for current user lookup."
            )
        response = await client.request(GET_CURRENT_USER_QUERY, operation="getCurrentUser")
        me = response.get("me")
        if not me:
            return "AUTHENTICATION_ERROR: Current user fetch failed. Verify API token and user permissions."
        return format_users_and_teams({"users": [me]})

    if has_name:
        if has_user_ids or has_team_ids or include_teams or teams_only or include_team_members:
            return (
                "PARAMETER_CONFLICT: name is STANDALONE only. Remove userIds, teamIds, includeTeams, "
                "teamsOnly, and includeTeamMembers when using name search."
            )
        response = await client.request(
            GET_USER_BY_NAME_QUERY, {"name": params.name}, operation="getUserByName",
        )
        users = response.get("users") or []
        if not users:
            return (
                f'NAME_SEARCH_EMPTY: No users found matching "{params.name}". Try broader search '
                "terms or verify user exists in account."
            )
        user_list = "\n".join(
            f"• **{user.get('name')}** (ID: {user.get('id')})"
            + (f" - {user['title']}" if user.get("title") else "")
            for user in users
            if user
        )
        return f'Found {len(users)} user(s) matching "{params.name}":\n\n{user_list}'

    if teams_only and include_teams:
        return (
            "PARAMETER_CONFLICT: Cannot use teamsOnly: true with includeTeams: true. Use teamsOnly "
            "for teams-only queries or includeTeams for combined data."
        )

    if teams_only or (not has_user_ids and has_team_ids and not include_teams):
        if include_team_members:
            query, operation = LIST_TEAMS_WITH_MEMBERS_QUERY, "listTeamsWithMembers"
        else:
            query, operation = LIST_TEAMS_ONLY_QUERY, "listTeamsOnly"
        variables: dict[str, Any] = {"teamIds": params.team_ids}
    elif not include_teams:
        if has_user_ids:
            query, operation = LIST_USERS_WITH_TEAMS_QUERY, "listUsersWithTeams"
            variables = {"userIds": params.user_ids, "limit": DEFAULT_USER_LIMIT}
        else:
            query, operation = LIST_USERS_ONLY_QUERY, "listUsersOnly"
            variables = {"userIds": None, "limit": DEFAULT_USER_LIMIT}
    else:
        query, operation = LIST_USERS_AND_TEAMS_QUERY, "listUsersAndTeams"
        variables = {
            "userIds": params.user_ids,
            "teamIds": params.team_ids,
            "limit": DEFAULT_USER_LIMIT,
        }

    response = await client.request(query, variables, operation=operation)
    return format_users_and_teams(response)


LIST_USERS_AND_TEAMS_DESCRIPTION = """Tool to fetch users and/or teams data.

MANDATORY BEST PRACTICES:
1. ALWAYS use specific IDs or names when available
2. If no ids available, use name search if possible (USERS ONLY)
3. Use 'getMe: true' to get current user information
4. AVOID broad queries (no parameters) - use only as last resort

REQUIRED PARAMETER PRIORITY (use in this order):
1. getMe - STANDALONE
2. userIds
3. name - STANDALONE (USERS ONLY, NOT for teams)
4. teamIds + teamsOnly
5. No parameters - LAST RESORT

CRITICAL USAGE RULES:
• userIds + teamIds requires explicit includeTeams: true flag
• includeTeams: true fetches both users and teams, do not use this to fetch a specific user's teams rather fetch that user by id and you will get their team memberships.
• name parameter is for USER search ONLY - it cannot be used to search for teams. Use teamIds to fetch specific teams."""


@tool("list_users_and_teams", LIST_USERS_AND_TEAMS_DESCRIPTION, ListUsersAndTeamsInput.model_json_schema())
async def list_users_and_teams(args: dict[str, Any]) -> dict[str, Any]:
    validated, err = _validate(ListUsersAndTeamsInput, args)
    if err:
        return err
    return await _safe_call(
        run_list_users_and_teams(get_http_client(), validated),
        fallback_hint="Try: Narrow the request with userIds, teamIds or name.",
    )
