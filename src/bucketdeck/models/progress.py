from pydantic import BaseModel, Field


class ProgressStats(BaseModel):
    """Learning progress summary.

    - bucket_counts: バケット番号ごとのカード枚数（Retired を含む）
    - total_cards: 学習中（Retired 以外）のカード枚数
    - retired_cards: Retired のカード枚数
    - accuracy: 全履歴に占める Easy の割合（履歴が空なら 0）
    - recent_accuracy: 直近の履歴のみで計算した Easy の割合
    """

    bucket_counts: dict[int, int] = Field(default_factory=dict)
    total_cards: int = 0
    retired_cards: int = 0
    total_reviews: int = 0
    difficulty_counts: dict[str, int] = Field(default_factory=dict)
    accuracy: float = 0.0
    recent_accuracy: float = 0.0
