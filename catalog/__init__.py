"""Static game data: tiers, goals, research, prestige and achievements."""

from .tiers import (
    BASE_TIER,
    TIER_DATA,
    TIER_ORDER,
    Building,
    BuildingEffect,
    BuildingEffectType,
    TierDefinition,
    TierType,
    get_building,
    get_next_tier,
    get_tier_by_type,
    get_tier_index,
)
from .goals import (
    Goal,
    GoalGenerator,
    GoalTemplate,
    GoalType,
    build_goal_templates,
    generate_random_goals,
    get_all_goal_templates,
)
from .research import (
    ESCALATION_DENYLIST,
    NEXT_LEVEL_EFFECT,
    RESEARCH_DATA,
    ResearchEffect,
    ResearchEffectType,
    ResearchUpgrade,
    create_research_catalog,
    next_research_level,
)
from .prestige import (
    PRESTIGE_UPGRADES,
    PrestigeEffect,
    PrestigeEffectType,
    PrestigeUpgrade,
    calculate_prestige_currency,
    create_prestige_catalog,
    get_prestige_upgrade_cost,
)
from .achievements import (
    ACHIEVEMENTS,
    Achievement,
    AchievementBonus,
    AchievementBonusType,
    AchievementCondition,
    AchievementConditionType,
    create_achievement_catalog,
)
from .format import format_income, format_number

__all__ = [
    "ACHIEVEMENTS",
    "Achievement",
    "AchievementBonus",
    "AchievementBonusType",
    "AchievementCondition",
    "AchievementConditionType",
    "BASE_TIER",
    "Building",
    "BuildingEffect",
    "BuildingEffectType",
    "ESCALATION_DENYLIST",
    "Goal",
    "GoalGenerator",
    "GoalTemplate",
    "GoalType",
    "NEXT_LEVEL_EFFECT",
    "PRESTIGE_UPGRADES",
    "PrestigeEffect",
    "PrestigeEffectType",
    "PrestigeUpgrade",
    "RESEARCH_DATA",
    "ResearchEffect",
    "ResearchEffectType",
    "ResearchUpgrade",
    "TIER_DATA",
    "TIER_ORDER",
    "TierDefinition",
    "TierType",
    "build_goal_templates",
    "calculate_prestige_currency",
    "create_achievement_catalog",
    "create_prestige_catalog",
    "create_research_catalog",
    "format_income",
    "format_number",
    "generate_random_goals",
    "get_all_goal_templates",
    "get_building",
    "get_next_tier",
    "get_prestige_upgrade_cost",
    "get_tier_by_type",
    "get_tier_index",
    "next_research_level",
]
