"""Global constants for the wefed application."""

# Firestore collections
USERS_COLLECTION = "users"
POSTS_COLLECTION = "posts"
GROUPS_COLLECTION = "groups"
CAMPAIGNS_COLLECTION = "campaigns"

# Pagination
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Users
TIER_FREE = "free"
TIER_PREMIUM = "premium"
TIERS = [TIER_FREE, TIER_PREMIUM]
SUBSCRIPTION_NONE = "none"
SUBSCRIPTION_ACTIVE = "active"
SUBSCRIPTION_PAST_DUE = "past_due"
SUBSCRIPTION_CANCELED = "canceled"
DEFAULT_USER_ROLE = "Member"

# Posts
VISIBILITY_PUBLIC = "public"
VISIBILITY_FOLLOWERS = "followers"
VISIBILITY_GROUP = "group"
VISIBILITY_PRIVATE = "private"
# Group visibility is only ever set on posts created inside a group.
POST_VISIBILITIES = [VISIBILITY_PUBLIC, VISIBILITY_FOLLOWERS, VISIBILITY_PRIVATE]
# Firestore caps a query at 30 disjunctions: 15 authors x 2 visibilities.
FOLLOWED_AUTHORS_CHUNK = 15
POST_TYPES = ["standard", "poll", "article", "event"]
MEDIA_TYPES = ["image", "video", "document"]
TRENDING_WINDOW_HOURS = 24
TRENDING_LIKE_WEIGHT = 1
TRENDING_COMMENT_WEIGHT = 2
TRENDING_SHARE_WEIGHT = 3

# Groups
PRIVACY_PUBLIC = "public"
PRIVACY_PRIVATE = "private"
PRIVACY_SECRET = "secret"
GROUP_PRIVACY_LEVELS = [PRIVACY_PUBLIC, PRIVACY_PRIVATE, PRIVACY_SECRET]
ROLE_MEMBER = "member"
ROLE_MODERATOR = "moderator"
ROLE_ADMIN = "admin"
ROLE_CREATOR = "creator"
GROUP_CATEGORIES = [
    "Sustainable Finance",
    "Digital Economy",
    "Emerging Markets",
    "Climate Economics",
    "Policy & Governance",
    "Technology & Innovation",
    "Social Impact",
    "Research & Academia",
    "Networking",
    "Other",
]
DEFAULT_GROUP_SETTINGS = {
    "allowMemberPosts": True,
    "requirePostApproval": False,
    "allowMemberInvites": True,
}
GROUP_RECENT_POSTS_LIMIT = 20

# Campaigns
CAMPAIGN_CATEGORIES = [
    "Environment",
    "Education",
    "Economic Development",
    "Healthcare",
    "Technology",
    "Community",
    "Emergency Relief",
    "Research",
    "Social Impact",
    "Other",
]
CAMPAIGN_STATUSES = [
    "draft",
    "pending_review",
    "active",
    "paused",
    "completed",
    "canceled",
]
CAMPAIGN_ACTIVE = "active"
CAMPAIGN_COMPLETED = "completed"
ORGANIZATION_TYPES = ["individual", "nonprofit", "organization"]
MIN_CAMPAIGN_GOAL = 100
MIN_DONATION = 1
DEFAULT_COVER_IMAGE = "https://via.placeholder.com/800x400"
CAMPAIGN_TRENDING_WINDOW_DAYS = 3
RECENT_DONATIONS_LIMIT = 10
DONATION_COMPLETED = "completed"

# Email-related constants
SMTP_AUTH_ERROR_CODE = 534
