# Services package init
"""
LearnHub Backend: Services Layer
==================================

What:  Business logic between routes (HTTP) and the database.
How:   Services take an AsyncSession plus plain values, apply the rules,
       and raise LearnHub exceptions that the global handlers translate.

Service Inventory:
    - LLMService (abstract) / GeminiService: chat completions
    - CoachingService: topic generation, speech feedback, calorie lookup
    - SessionService: speaking sessions and per-topic aggregation
    - NodeService: the AI-learning notes tree
    - CurriculumService: quiz questions, mastery, progress
    - WorkoutService: activity log, analytics, stats, weight, coach chat
    - SpeechService: text-to-speech proxy
    - FileService: quiz image validation and storage
    - exercise_estimator: rule-based exercise calorie estimate
"""
