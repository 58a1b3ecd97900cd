from abc import ABC, abstractmethod

from trip_booking.booking.domain.entity import ComponentBooking


class ProviderAdapter(ABC):
    """外部の旅行・チケットプロバイダへの予約呼び出し

    実際のプロバイダ連携はこのインターフェースの実装として差し込む。
    """

    @abstractmethod
    async def book(self, component: ComponentBooking) -> dict:
        """コンポーネントを予約する

        Returns:
            dict: プロバイダが返した予約情報（便名・部屋番号など。空でもよい）

        Raises:
            ProviderException: プロバイダ側で予約できなかった
        """
        raise NotImplementedError
