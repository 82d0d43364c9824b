import uvicorn

from fastapi import FastAPI, Body, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from tclogger import TCLogger
from typing import Optional

from apps.arg_parser import ArgParser
from caches.result_cache import ResultCache, payload_digest
from configs.envs import FEED_APP_ENVS, RANKING_ENVS
from ranks.constants import FEED_PAGE_SIZE, FEED_FILTER, CACHE_TTL_SECONDS
from ranks.ranker import FeedRanker
from ranks.snapshots import PostSnapshot, AuthorSnapshot, ViewerContext
from ranks.weights import RankingWeights

logger = TCLogger()


def parse_candidates(
    posts: list[dict], authors: list[dict]
) -> tuple[list[PostSnapshot], dict[str, AuthorSnapshot]]:
    post_snapshots = [PostSnapshot.from_dict(post) for post in posts]
    author_snapshots = {}
    for author in authors:
        snapshot = AuthorSnapshot.from_dict(author)
        author_snapshots[snapshot.user_id] = snapshot
    return post_snapshots, author_snapshots


class FeedApp:
    def __init__(self, app_envs: dict = {}, ranking_envs: dict = None):
        self.title = app_envs.get("app_name", "Feed Ranking")
        self.version = app_envs.get("version", "0.1.0")
        self.app = FastAPI(
            docs_url="/",
            title=self.title,
            version=self.version,
            swagger_ui_parameters={"defaultModelsExpandDepth": -1},
        )
        self.app_envs = app_envs
        self.init_ranker(ranking_envs)
        if app_envs.get("allow_cors"):
            self.allow_cors()
        self.setup_routes()
        logger.success(f"> {self.title} - v{self.version}")

    def init_ranker(self, ranking_envs: dict = None):
        self.weights = RankingWeights.from_dict(ranking_envs)
        self.cache = ResultCache(ttl=self.app_envs.get("cache_ttl", CACHE_TTL_SECONDS))
        self.feed_ranker = FeedRanker(
            self.weights,
            cache=self.cache,
            max_workers=self.app_envs.get("max_workers", 8),
        )

    def allow_cors(self):
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    def rank(
        self,
        posts: list[dict] = Body(...),
        authors: Optional[list[dict]] = Body([]),
        viewer: Optional[dict] = Body(None),
        limit: Optional[int] = Body(FEED_PAGE_SIZE),
        cursor: Optional[str] = Body(None),
        filter: Optional[str] = Body(FEED_FILTER),
        use_cache: Optional[bool] = Body(True),
        verbose: Optional[bool] = Body(False),
    ):
        try:
            viewer_context = ViewerContext.from_dict(viewer)
            if use_cache:
                page = self.feed_ranker.rank_feed(
                    viewer_context,
                    fetcher=lambda: parse_candidates(posts, authors),
                    limit=limit,
                    cursor=cursor,
                    filter=filter,
                    candidates_digest=payload_digest(posts, authors, viewer),
                    verbose=verbose,
                )
            else:
                post_snapshots, author_snapshots = parse_candidates(posts, authors)
                page = self.feed_ranker.rank_posts(
                    post_snapshots,
                    author_snapshots,
                    viewer_context,
                    limit=limit,
                    cursor=cursor,
                    filter=filter,
                    verbose=verbose,
                )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return page.to_dict()

    def explain(
        self,
        post: dict = Body(...),
        author: Optional[dict] = Body(None),
        viewer: Optional[dict] = Body(None),
    ):
        try:
            post_snapshot = PostSnapshot.from_dict(post)
            author_snapshot = AuthorSnapshot.from_dict(author) if author else None
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return self.feed_ranker.explain(
            post_snapshot, author_snapshot, ViewerContext.from_dict(viewer)
        )

    def get_weights(self):
        return self.weights.to_dict()

    def cache_stats(self):
        return self.cache.stats().to_dict()

    def setup_routes(self):
        self.app.post(
            "/rank",
            summary="Rank candidate posts into a feed page",
        )(self.rank)

        self.app.post(
            "/explain",
            summary="Get the score breakdown of a single post",
        )(self.explain)

        self.app.get(
            "/weights",
            summary="Get current ranking weights",
        )(self.get_weights)

        self.app.get(
            "/cache_stats",
            summary="Get result cache counters",
        )(self.cache_stats)


if __name__ == "__main__":
    arg_parser = ArgParser()
    new_app_envs = arg_parser.update_app_envs(FEED_APP_ENVS)
    feed_app = FeedApp(new_app_envs, ranking_envs=RANKING_ENVS)
    feed_app.feed_ranker.log_weights()
    app = feed_app.app
    uvicorn.run("__main__:app", host=new_app_envs["host"], port=new_app_envs["port"])

    # Production mode by default:
    # python -m apps.feed_app

    # Development mode:
    # python -m apps.feed_app -m dev
    # python -m apps.feed_app -m dev -p 21012 -t 30
