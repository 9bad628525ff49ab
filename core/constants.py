# core/constants.py

# --- Activity Verbs (Standard Registry) ---

# Team lifecycle
ACTIVITY_TEAM_CREATED = "team.created"
ACTIVITY_TEAM_DEACTIVATED = "team.deactivated"
ACTIVITY_TEAM_OWNER_REPAIRED = "team.owner_repaired"

# Membership
ACTIVITY_MEMBER_LEFT = "team.member_left"
ACTIVITY_MEMBER_REMOVED = "team.member_removed"

# Join requests
ACTIVITY_JOIN_REQUESTED = "join_request.created"
ACTIVITY_JOIN_APPROVED = "join_request.approved"
ACTIVITY_JOIN_REJECTED = "join_request.rejected"

# Invitations
ACTIVITY_INVITATION_SENT = "invitation.created"
ACTIVITY_INVITATION_ACCEPTED = "invitation.accepted"
ACTIVITY_INVITATION_DECLINED = "invitation.declined"
ACTIVITY_INVITATION_CANCELLED = "invitation.cancelled"

# Matching
ACTIVITY_MATCH_CREATED = "match.created"
ACTIVITY_MATCH_ENDED = "match.ended"

# Accounts (admin intervention)
ACTIVITY_USER_SOFT_DELETED = "user.soft_deleted"
ACTIVITY_USER_RESTORED = "user.restored"

# Event registration
ACTIVITY_REGISTRATION_CREATED = "registration.created"
ACTIVITY_REGISTRATION_CANCELLED = "registration.cancelled"
ACTIVITY_REGISTRATION_APPROVED = "registration.approved"
ACTIVITY_REGISTRATION_REJECTED = "registration.rejected"
