from fastapi import APIRouter, Depends, HTTPException, status

from reading_tracker.schemas import ArticleCreate, ArticleResponse
from reading_tracker.tracker import Tracker, get_tracker

router = APIRouter(prefix="/api/articles", tags=["articles"])


@router.post("")
async def save_article(article: ArticleCreate, tracker: Tracker = Depends(get_tracker)):
    """Save a page from the browser extension"""
    if not article.url or not article.url.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="URL is required")

    result = await tracker.articles.save_article(article)
    if not result.ok:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(result.error))
    saved = ArticleResponse.model_validate(result.value)
    return {"success": True, **saved.model_dump(mode="json")}


@router.get("")
async def list_articles(limit: int = 50, offset: int = 0, tracker: Tracker = Depends(get_tracker)):
    return {"articles": await tracker.articles.list_articles(limit=limit, offset=offset)}


@router.get("/search")
async def search_articles(q: str = "", tracker: Tracker = Depends(get_tracker)):
    if not q.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Query parameter "q" is required')
    return {"results": await tracker.articles.search_articles(q)}


@router.get("/stats")
async def article_stats(tracker: Tracker = Depends(get_tracker)):
    return await tracker.articles.article_stats()


@router.get("/{article_id}", response_model=ArticleResponse)
async def get_article(article_id: int, tracker: Tracker = Depends(get_tracker)):
    article = await tracker.articles.get_article(article_id)
    if not article:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Article not found")
    return article


@router.post("/{article_id}/click", response_model=ArticleResponse)
async def track_article_click(article_id: int, tracker: Tracker = Depends(get_tracker)):
    """Count a reopening of a saved article"""
    result = await tracker.articles.track_article_click(article_id)
    if not result.ok:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(result.error))
    if result.value is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Article not found")
    return result.value
