"""Per-node-type manifests. Importing this module registers all of them."""
from __future__ import annotations

from core_sync.manifest import (
    Manifest, Subscriptions, register_manifest,
    create_field, create_nested_field, create_array_item_field,
)

# ── shared fields ───────────────────────────────────────────────────────────
COMMON_FIELDS = (
    create_field("title", "Title", "The title or name of the node", critical=True),
    create_field("description", "Description", "The description or details of the node"),
    create_field("position", "Position", "The x,y coordinates of the node"),
    create_field("status", "Status", "The current status of the node", critical=True),
    create_field("createdAt", "Created At", "When the node was created"),
    create_field("updatedAt", "Updated At", "When the node was last updated"),
)

HIERARCHY_FIELDS = (
    create_field("parentId", "Parent", "Id of the parent node in the rollup tree", critical=True),
    create_field("childIds", "Children", "Ids of child nodes (derived from PARENT_CHILD edges)", critical=True),
    create_field("isRollup", "Is Rollup", "Whether this node aggregates its children"),
    create_field("originalEstimate", "Original Estimate", "Direct work estimate of this node", critical=True),
    create_field("rollupEstimate", "Rollup Estimate", "Aggregated estimate of all children", critical=True),
)

TEAM_ALLOCATION_FIELDS = (
    create_field("teamAllocations", "Team Allocations", "The teams and members allocated to this node", critical=True),
    create_array_item_field("teamAllocations", "teamId", "Team ID", "The ID of an allocated team"),
    create_array_item_field("teamAllocations", "requestedHours", "Requested Hours",
                            "The number of hours requested from a team", critical=True),
    create_array_item_field("teamAllocations", "allocatedMembers", "Allocated Members",
                            "The members allocated from a team", critical=True),
)

MEMBER_ALLOCATION_FIELDS = (
    create_field("teamMembers", "Team Members", "The team members assigned to this node"),
    create_field("memberAllocations", "Member Allocations", "The allocation of team members to this node"),
    create_array_item_field("memberAllocations", "memberId", "Member ID", "The ID of an allocated member"),
    create_array_item_field("memberAllocations", "timePercentage", "Time Percentage",
                            "Share of the member's time on this node", critical=True),
)

# Fields most resource consumers read from teams and members.
_TEAM_SUB = ("title", "roster", "bandwidth")
_MEMBER_SUB = ("title", "weeklyCapacity", "dailyRate")

# ── feature ─────────────────────────────────────────────────────────────────
FEATURE = register_manifest(Manifest(
    node_type="feature",
    publishes=COMMON_FIELDS + HIERARCHY_FIELDS + (
        create_field("buildType", "Build Type", "Whether this feature is built internally or externally", critical=True),
        create_field("cost", "Cost", "The calculated cost for this feature"),
        create_field("duration", "Duration", "How long this feature will take to build", critical=True),
        create_field("timeUnit", "Time Unit", "The unit of time used for duration"),
        create_field("startDate", "Start Date", "When this feature is scheduled to start"),
        create_field("endDate", "End Date", "When this feature is scheduled to end"),
        create_field("availableBandwidth", "Available Bandwidth", "The available bandwidth for this feature"),
    ) + MEMBER_ALLOCATION_FIELDS + TEAM_ALLOCATION_FIELDS,
    subscribes=Subscriptions(
        node_types=("team", "teamMember", "feature"),
        fields={
            "team": _TEAM_SUB,
            "teamMember": _MEMBER_SUB,
            # child features feed this node's rollup
            "feature": ("duration", "cost", "originalEstimate", "rollupEstimate"),
        },
    ),
))

# ── team ────────────────────────────────────────────────────────────────────
TEAM = register_manifest(Manifest(
    node_type="team",
    publishes=COMMON_FIELDS + (
        create_field("roster", "Roster", "Members of the team and their allocation", critical=True),
        create_array_item_field("roster", "memberId", "Member ID", "The ID of a roster member"),
        create_array_item_field("roster", "allocation", "Allocation", "Percentage of the member given to the team", critical=True),
        create_array_item_field("roster", "role", "Role", "The member's role on the team"),
        create_array_item_field("roster", "startDate", "Start Date", "When the member joins the team"),
        create_array_item_field("roster", "endDate", "End Date", "When the member leaves the team"),
        create_field("bandwidth", "Bandwidth", "Total weekly hours available to the team", critical=True),
        create_field("season", "Season", "Planning season of the team"),
        create_nested_field("season", "startDate", "Season Start", "When the season starts"),
        create_nested_field("season", "endDate", "Season End", "When the season ends"),
        create_nested_field("season", "name", "Season Name", "The name of the season"),
        create_nested_field("season", "goals", "Season Goals", "Goals for the season"),
    ),
    subscribes=Subscriptions(
        node_types=("teamMember", "feature"),
        fields={
            "teamMember": ("title", "weeklyCapacity", "roles", "dailyRate"),
            "feature": ("teamAllocations", "buildType", "duration"),
        },
    ),
))

# ── team member ─────────────────────────────────────────────────────────────
TEAM_MEMBER = register_manifest(Manifest(
    node_type="teamMember",
    publishes=COMMON_FIELDS + (
        create_field("roles", "Roles", "The roles this member can fill", critical=True),
        create_field("bio", "Bio", "Short biography"),
        create_field("timezone", "Timezone", "The member's working timezone"),
        create_field("dailyRate", "Daily Rate", "Cost of one working day", critical=True),
        create_field("hoursPerDay", "Hours Per Day", "Working hours per day", critical=True),
        create_field("daysPerWeek", "Days Per Week", "Working days per week", critical=True),
        create_field("weeklyCapacity", "Weekly Capacity", "Working hours per week", critical=True),
        create_field("startDate", "Start Date", "When the member becomes available"),
        create_field("skills", "Skills", "Skills of the member"),
        create_field("allocation", "Allocation", "Default allocation percentage", critical=True),
        create_field("teamId", "Team", "The team the member belongs to"),
    ),
    subscribes=Subscriptions(
        node_types=("team", "feature"),
        fields={
            "team": ("roster", "bandwidth"),
            "feature": ("teamAllocations",),
        },
    ),
))

# ── provider ────────────────────────────────────────────────────────────────
PROVIDER = register_manifest(Manifest(
    node_type="provider",
    publishes=COMMON_FIELDS + HIERARCHY_FIELDS + (
        create_field("duration", "Duration", "Integration duration", critical=True),
        create_field("costs", "Costs", "Cost table of the provider", critical=True),
        create_array_item_field("costs", "costType", "Cost Type", "fixed, unit, revenue or tiered", critical=True),
        create_field("costs[].details.amount", "Amount", "Fixed amount", "costs[].details.amount", critical=True),
        create_field("costs[].details.unitPrice", "Unit Price", "Price per unit", "costs[].details.unitPrice", critical=True),
        create_field("costs[].details.percentage", "Percentage", "Revenue share", "costs[].details.percentage", critical=True),
        create_field("costs[].details.tiers", "Tiers", "Tiered pricing", "costs[].details.tiers"),
        create_field("ddItems", "Due Diligence", "Due-diligence checklist"),
        create_array_item_field("ddItems", "status", "Status", "Checklist item status", critical=True),
    ) + TEAM_ALLOCATION_FIELDS,
    subscribes=Subscriptions(
        node_types=("team", "teamMember", "feature"),
        fields={
            "team": _TEAM_SUB,
            "teamMember": _MEMBER_SUB,
            "feature": ("title", "buildType", "duration"),
        },
    ),
))

# ── option ──────────────────────────────────────────────────────────────────
OPTION = register_manifest(Manifest(
    node_type="option",
    publishes=COMMON_FIELDS + HIERARCHY_FIELDS + (
        create_field("optionType", "Option Type", "Kind of option", critical=True),
        create_field("transactionFeeRate", "Transaction Fee Rate", "Fee rate per transaction"),
        create_field("monthlyVolume", "Monthly Volume", "Expected monthly volume"),
        create_field("duration", "Duration", "Duration of the option", critical=True),
        create_field("buildDuration", "Build Duration", "Time needed to build", critical=True),
        create_field("goals", "Goals", "Goals of the option"),
        create_field("risks", "Risks", "Risks of the option"),
        create_field("timeToClose", "Time To Close", "Expected time to close"),
    ) + MEMBER_ALLOCATION_FIELDS[:2] + TEAM_ALLOCATION_FIELDS[:1],
    subscribes=Subscriptions(
        node_types=("team", "teamMember", "feature", "provider"),
        fields={
            "team": _TEAM_SUB,
            "teamMember": _MEMBER_SUB,
            "feature": ("title", "buildType", "duration"),
            "provider": ("title", "costs", "duration"),
        },
    ),
))

# ── milestone ───────────────────────────────────────────────────────────────
MILESTONE = register_manifest(Manifest(
    node_type="milestone",
    publishes=COMMON_FIELDS + HIERARCHY_FIELDS + (
        create_field("kpis", "KPIs", "Key indicators tracked by this milestone"),
        create_field("totalCost", "Total Cost", "Aggregated cost of connected work", critical=True),
        create_field("totalHours", "Total Hours", "Aggregated hours of connected work", critical=True),
        create_field("startDate", "Start Date", "Earliest start of connected work"),
        create_field("endDate", "End Date", "Latest end of connected work"),
    ),
    subscribes=Subscriptions(
        node_types=("feature", "option", "provider", "milestone"),
        fields={
            "feature": ("title", "status", "cost", "duration", "teamAllocations", "rollupEstimate"),
            "option": ("title", "duration", "teamAllocations", "rollupEstimate"),
            "provider": ("title", "costs", "duration", "rollupEstimate"),
            "milestone": ("totalCost", "totalHours", "rollupEstimate"),
        },
    ),
))

# ── meta ────────────────────────────────────────────────────────────────────
META = register_manifest(Manifest(
    node_type="meta",
    publishes=COMMON_FIELDS + (
        create_field("knowledgeType", "Knowledge Type", "Kind of knowledge captured"),
        create_field("roadmapPhase", "Roadmap Phase", "Phase of the roadmap"),
        create_field("tags", "Tags", "Free-form tags"),
        create_field("priority", "Priority", "Priority of the note", critical=True),
        create_field("relatedLinks", "Related Links", "Links to related material"),
    ),
    subscribes=Subscriptions(
        node_types=("milestone", "feature", "option", "provider", "team", "teamMember"),
        fields={
            "milestone": ("title", "description", "status", "kpis"),
            "feature": ("title", "description", "buildType"),
            "option": ("title", "description", "optionType"),
            "provider": ("title", "description"),
            "team": ("title", "description"),
            "teamMember": ("title", "description"),
        },
    ),
))

MANIFESTS = (FEATURE, TEAM, TEAM_MEMBER, PROVIDER, OPTION, MILESTONE, META)

__all__ = ["COMMON_FIELDS", "HIERARCHY_FIELDS", "MANIFESTS",
           "FEATURE", "TEAM", "TEAM_MEMBER", "PROVIDER", "OPTION", "MILESTONE", "META"]
