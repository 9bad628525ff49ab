from django.urls import path

from .views import CandidateListView, MatchListView, SwipeView, UnmatchView

urlpatterns = [
    path("candidates/", CandidateListView.as_view(), name="matching-candidates"),
    path("swipe/", SwipeView.as_view(), name="matching-swipe"),
    path("matches/", MatchListView.as_view(), name="matching-matches"),
    path("matches/<int:match_id>/unmatch/", UnmatchView.as_view(), name="matching-unmatch"),
]
