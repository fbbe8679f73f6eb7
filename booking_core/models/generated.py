from sqlalchemy import Column, ForeignKey, Float, Index, Integer, Text, text

from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata


class Shops(Base):
    __tablename__ = 'shops'

    name = Column(Text, nullable=False)
    work_schedule = Column(Text, nullable=False, server_default=text("'{}'"))
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    id = Column(Integer, primary_key=True)
    slug = Column(Text, unique=True)
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    professionals = relationship('Professionals', back_populates='shop')
    services = relationship('Services', back_populates='shop')
    bookings = relationship('Bookings', back_populates='shop')


class Professionals(Base):
    __tablename__ = 'professionals'

    shop_id = Column(ForeignKey('shops.id', ondelete='CASCADE'), nullable=False)
    work_schedule = Column(Text, nullable=False, server_default=text("'{}'"))
    id = Column(Integer, primary_key=True)
    display_name = Column(Text)
    slot_step_minutes = Column(Integer)  # NULL = shop default grid
    is_active = Column(Integer, server_default=text('1'))
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    shop = relationship('Shops', back_populates='professionals')
    bookings = relationship('Bookings', back_populates='professional')
    time_blocks = relationship('TimeBlocks', back_populates='professional')


class Services(Base):
    __tablename__ = 'services'

    shop_id = Column(ForeignKey('shops.id', ondelete='CASCADE'), nullable=False)
    name = Column(Text, nullable=False)
    duration_min = Column(Integer, nullable=False)
    break_min = Column(Integer, nullable=False, server_default=text('0'))
    price = Column(Float, nullable=False, server_default=text('0'))
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    id = Column(Integer, primary_key=True)

    shop = relationship('Shops', back_populates='services')
    bookings = relationship('Bookings', back_populates='service')


class CalendarOverrides(Base):
    __tablename__ = 'calendar_overrides'

    target_type = Column(Text, nullable=False)  # "shop" | "professional"
    date_start = Column(Text, nullable=False)
    date_end = Column(Text, nullable=False)
    override_kind = Column(Text, nullable=False)  # "day_off" | "custom_hours" | ...
    id = Column(Integer, primary_key=True)
    target_id = Column(Integer)
    reason = Column(Text)  # custom hours as "HH:MM-HH:MM"
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))


class TimeBlocks(Base):
    __tablename__ = 'time_blocks'

    professional_id = Column(ForeignKey('professionals.id', ondelete='CASCADE'), nullable=False)
    title = Column(Text, nullable=False)
    block_type = Column(Text, nullable=False, server_default=text("'other'"))
    is_recurring = Column(Integer, nullable=False, server_default=text('0'))
    start_time = Column(Text, nullable=False)  # "HH:MM"
    end_time = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)
    day_of_week = Column(Integer)  # 0 = Monday, recurring blocks only
    block_date = Column(Text)  # "YYYY-MM-DD", one-off blocks only
    notes = Column(Text)

    professional = relationship('Professionals', back_populates='time_blocks')


class Bookings(Base):
    __tablename__ = 'bookings'
    __table_args__ = (
        Index('ix_bookings_professional_day', 'professional_id', 'booking_date'),
    )

    shop_id = Column(ForeignKey('shops.id', ondelete='CASCADE'), nullable=False)
    professional_id = Column(ForeignKey('professionals.id', ondelete='CASCADE'), nullable=False)
    service_id = Column(ForeignKey('services.id'))
    client_id = Column(Text, nullable=False)
    booking_date = Column(Text, nullable=False)  # "YYYY-MM-DD"
    start_minutes = Column(Integer, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    status = Column(Text, nullable=False, server_default=text("'pending'"))
    created_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))
    id = Column(Integer, primary_key=True)
    request_token = Column(Text, unique=True)
    final_price = Column(Float)
    notes = Column(Text)
    cancel_reason = Column(Text)

    shop = relationship('Shops', back_populates='bookings')
    professional = relationship('Professionals', back_populates='bookings')
    service = relationship('Services', back_populates='bookings')
