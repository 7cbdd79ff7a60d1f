from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/healthz")
def health_check(request: Request) -> dict[str, str]:
    """Simple health check endpoint.

    ライブネス/レディネス確認用の簡易エンドポイント。
    状態ファイルの読込が終わっていない間は "starting" を返す。
    """
    manager = getattr(request.app.state, "manager", None)
    if manager is None or not manager.initialized:
        return {"status": "starting"}
    return {"status": "ok"}
