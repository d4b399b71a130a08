from sqlalchemy.orm import Session

from geomatch.rider import Rider as RiderDomain

from ..schema import Rider


class RiderRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, rider: RiderDomain) -> None:
        self.session.add(Rider(id=rider.rider_id, name=rider.name))

    def get(self, rider_id: str) -> RiderDomain | None:
        row = self.session.get(Rider, rider_id)
        if row is None:
            return None
        return RiderDomain(rider_id=row.id, name=row.name)

    def exists(self, rider_id: str) -> bool:
        return self.session.get(Rider, rider_id) is not None
