"""
Quiz attempt engine.

Learners check their attempt status, fetch a quiz without its answers and
submit attempts; tutors read the attempts made on their courses' quizzes.
"""
from flask import Blueprint
from learnhub.config import config

quiz_bp = Blueprint('quiz', __name__, url_prefix=config.QUIZ_API_PREFIX)

from learnhub.quiz import student_routes  # Import student routes
from learnhub.quiz import tutor_routes  # Import tutor routes
