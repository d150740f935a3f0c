from src.models.nutrition import (  # noqa: F401
    CamelModel,
    FoodEstimate,
    GeneratedPlan,
    MacroTotals,
    MealAnalysis,
    PersonalizedRecommendation,
    ProcessedFood,
    RecipeSuggestion,
)
