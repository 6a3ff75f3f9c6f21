from workshop import db


class JobCharge(db.Model):
    __tablename__ = 'job_charges'

    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.Integer, db.ForeignKey('workshop_jobs.id', ondelete='CASCADE'),
                       nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    amount = db.Column(db.Float, nullable=False, default=0.0)
    tax_rate = db.Column(db.Float, nullable=False, default=0.0)

    job = db.relationship('WorkshopJob', back_populates='charges')

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'amount': self.amount, 'tax_rate': self.tax_rate}
