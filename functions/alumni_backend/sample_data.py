"""
Demo records used to bootstrap an empty portal.
"""

from __future__ import annotations

import logging

from alumni_backend.kv import KvStore
from alumni_backend.resources import (
    ALUMNI,
    CAMPAIGN,
    EVENT,
    MENTOR,
    PROBLEM,
    list_records,
    record_key,
)

logger = logging.getLogger(__name__)

SAMPLE_ALUMNI = [
    {
        "id": "1",
        "name": "Sarah Johnson",
        "email": "sarah.johnson@example.com",
        "gradYear": 2020,
        "degree": "Computer Science",
        "company": "Google",
        "position": "Senior Software Engineer",
        "location": "San Francisco, CA",
        "industry": "Technology",
        "skills": ["React", "Node.js", "Python", "Machine Learning"],
        "bio": "Passionate about building scalable web applications and mentoring young developers.",
        "isAvailableForMentorship": True,
        "experience": [
            {
                "company": "Google",
                "position": "Senior Software Engineer",
                "duration": "2022 - Present",
                "description": "Leading development of cloud infrastructure tools",
            }
        ],
        "achievements": ["Google Cloud Certified Architect", "Tech Women Leadership Award"],
        "interests": ["AI/ML", "Open Source", "Mentoring"],
        "joinedDate": "2020-06-01",
        "lastActive": "2024-01-15",
    },
    {
        "id": "2",
        "name": "Michael Chen",
        "email": "michael.chen@example.com",
        "gradYear": 2018,
        "degree": "Business Administration",
        "company": "McKinsey & Company",
        "position": "Senior Consultant",
        "location": "New York, NY",
        "industry": "Consulting",
        "skills": ["Strategy", "Data Analysis", "Project Management", "Leadership"],
        "bio": "Strategy consultant helping companies drive digital transformation.",
        "isAvailableForMentorship": True,
        "experience": [
            {
                "company": "McKinsey & Company",
                "position": "Senior Consultant",
                "duration": "2020 - Present",
                "description": "Leading strategic consulting projects for Fortune 500 clients",
            }
        ],
        "achievements": ["MBA from Wharton", "Strategy Excellence Award"],
        "interests": ["Digital Strategy", "Entrepreneurship", "Venture Capital"],
        "joinedDate": "2018-05-15",
        "lastActive": "2024-01-10",
    },
]

SAMPLE_MENTORS = [
    {
        "id": "1",
        "name": "Sarah Johnson",
        "position": "Senior Software Engineer",
        "company": "Google",
        "industry": "Technology",
        "expertise": ["React", "Node.js", "Python", "Machine Learning"],
        "experience": 6,
        "rating": 4.9,
        "totalMentees": 12,
        "bio": "Passionate about building scalable web applications and mentoring young developers.",
        "availability": "available",
        "location": "San Francisco, CA",
    },
    {
        "id": "2",
        "name": "Michael Chen",
        "position": "Senior Consultant",
        "company": "McKinsey & Company",
        "industry": "Consulting",
        "expertise": ["Strategy", "Data Analysis", "Project Management", "Leadership"],
        "experience": 8,
        "rating": 4.8,
        "totalMentees": 8,
        "bio": "Strategy consultant helping companies drive digital transformation.",
        "availability": "available",
        "location": "New York, NY",
    },
]

SAMPLE_CAMPAIGNS = [
    {
        "id": "1",
        "title": "New Computer Lab Initiative",
        "description": "Help us build a state-of-the-art computer lab for students to learn coding and technology skills.",
        "goal": 50000,
        "raised": 32500,
        "donorCount": 45,
        "category": "education",
        "organizer": "Alumni Association",
        "createdAt": "2024-01-01",
        "deadline": "2024-12-31",
        "isActive": True,
    },
    {
        "id": "2",
        "title": "Scholarship Fund for Underserved Students",
        "description": "Support deserving students who need financial assistance to pursue their education.",
        "goal": 100000,
        "raised": 68750,
        "donorCount": 128,
        "category": "scholarship",
        "organizer": "Alumni Association",
        "createdAt": "2024-01-01",
        "deadline": "2024-12-31",
        "isActive": True,
    },
]

SAMPLE_EVENTS = [
    {
        "id": "1",
        "title": "Annual Alumni Reunion 2024",
        "description": "Join us for our annual reunion celebration with networking, dinner, and entertainment.",
        "date": "2024-06-15",
        "time": "18:00",
        "location": "Grand Ballroom, City Hotel",
        "type": "reunion",
        "capacity": 200,
        "registeredCount": 156,
        "organizer": "Alumni Association",
        "isRegistered": False,
        "isActive": True,
        "registrationDeadline": "2024-06-10",
        "price": 75,
    },
    {
        "id": "2",
        "title": "Tech Career Workshop",
        "description": "Learn about the latest trends in technology careers and get tips from industry experts.",
        "date": "2024-03-20",
        "time": "14:00",
        "location": "University Tech Center",
        "type": "workshop",
        "capacity": 50,
        "registeredCount": 32,
        "organizer": "Tech Alumni Group",
        "isRegistered": False,
        "isActive": True,
        "registrationDeadline": "2024-03-18",
        "price": 0,
    },
]

SAMPLE_PROBLEMS = [
    {
        "id": "1",
        "title": "Smart Attendance Tracking for Large Lecture Halls",
        "organization": "University IT Services",
        "category": "Software",
        "theme": "Smart Education",
        "description": "Design a low-friction way to record attendance for classes of 300+ students.",
        "deadline": "2024-09-30",
        "submittedIdeasCount": 0,
        "createdAt": "2024-01-01T00:00:00+00:00",
    },
    {
        "id": "2",
        "title": "Low-Cost Water Quality Sensor",
        "organization": "Campus Sustainability Office",
        "category": "Hardware",
        "theme": "Clean Water",
        "description": "Prototype a sensor that reports drinking water quality across campus buildings.",
        "deadline": "2024-10-15",
        "submittedIdeasCount": 0,
        "createdAt": "2024-01-02T00:00:00+00:00",
    },
]

SAMPLE_RECORDS = (
    (ALUMNI, SAMPLE_ALUMNI),
    (MENTOR, SAMPLE_MENTORS),
    (CAMPAIGN, SAMPLE_CAMPAIGNS),
    (EVENT, SAMPLE_EVENTS),
    (PROBLEM, SAMPLE_PROBLEMS),
)


def seed_sample_data(store: KvStore) -> bool:
    """
    Write the demo records unless alumni records already exist.

    Returns True when records were written.
    """
    if list_records(store, ALUMNI):
        logger.info("Sample data already present; skipping seed")
        return False
    count = 0
    for kind, records in SAMPLE_RECORDS:
        for record in records:
            store.set(record_key(kind, record["id"]), record)
            count += 1
    logger.info("Seeded %d sample records", count)
    return True
