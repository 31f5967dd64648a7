from creatorcore.db.repositories.orgs import OrgsRepository
from creatorcore.db.repositories.campaigns import CampaignsRepository
from creatorcore.db.repositories.creators import CreatorsRepository
from creatorcore.db.repositories.classification_runs import ClassificationRunsRepository
from creatorcore.db.repositories.genre_cache import GenreCacheRepository
from creatorcore.db.repositories.recommendations import RecommendationsRepository
from creatorcore.db.repositories.swipes import CampaignSwipesRepository

__all__ = [
    "OrgsRepository",
    "CampaignsRepository",
    "CreatorsRepository",
    "ClassificationRunsRepository",
    "GenreCacheRepository",
    "RecommendationsRepository",
    "CampaignSwipesRepository",
]
