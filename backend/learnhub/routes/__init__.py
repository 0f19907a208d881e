# Routes package init
"""
LearnHub Backend: API Routes Package
======================================

Route Inventory:
    - learning_tree.py: /api/ai-learning/*          (notes tree, adaptive quiz)
    - speaking.py:      speaking practice and AI feedback
    - quiz.py:          questions, mastery, progress, image upload
    - files.py:         GET /api/files/{path}        (uploaded images)
    - workout.py:       /api/workout/*, calorie estimators
    - speech.py:        POST /api/tts-google
    - auth.py:          POST /api/auth               (demo accounts)
    - health.py:        GET /health

Routes stay thin: parse the request, check required fields, call a
service, shape the response. Errors propagate as LearnHub exceptions to the
handlers registered in main.py.
"""
