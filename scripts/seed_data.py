"""
Seed a local database with sample users, courses, enrollments and reviews.

Wipes the users, courses, enrollments, reviews and notes collections first.
Run from the repository root:  python -m scripts.seed_data
"""

import asyncio
import logging

from learnify.auth.auth_utils import hash_password
from learnify.core.database import create_indexes, db_manager, new_id, utcnow
from learnify.courses.course_models import CourseCreate
from learnify.courses.course_service import CourseService
from learnify.enrollments.enrollment_service import EnrollmentService
from learnify.logging_config import setup_logging
from learnify.reviews.review_service import ReviewService
from learnify.users.user_models import ProfileUpdate, UserDocument, UserRole
from learnify.users.user_service import UserService

logger = logging.getLogger("seed_data")

ADMIN = {"name": "Admin User", "email": "admin@learnifyhub.com", "password": "admin123"}

STUDENTS = [
    {
        "name": "John Doe",
        "email": "john.doe@example.com",
        "profile": {
            "father_name": "Robert Doe",
            "mother_name": "Jane Doe",
            "education": "Bachelor of Computer Science",
            "university": "Tech University",
            "degree": "B.Tech",
            "major": "Computer Science",
            "year_of_completion": "2024",
            "contact_no": "+1234567890",
            "skills": ["JavaScript", "React", "Python", "Node.js"],
            "areas_of_interest": ["Web Development", "Machine Learning", "Data Science"],
        },
    },
    {
        "name": "Alice Smith",
        "email": "alice.smith@example.com",
        "profile": {
            "education": "Master of Data Science",
            "university": "Data University",
            "degree": "M.Sc",
            "major": "Data Science",
            "skills": ["Python", "Pandas", "SQL"],
            "areas_of_interest": ["Data Science", "Statistics"],
        },
    },
    {
        "name": "Bob Johnson",
        "email": "bob.johnson@example.com",
        "profile": {
            "education": "Bachelor of Information Technology",
            "university": "State College",
            "skills": ["HTML", "CSS", "JavaScript"],
            "areas_of_interest": ["Web Development", "Mobile Development"],
        },
    },
]
STUDENT_PASSWORD = "student123"

COURSES = [
    {
        "title": "React Development Masterclass",
        "description": "Master React from basics to advanced concepts including hooks, context, and performance optimization. Build real-world projects and learn industry best practices.",
        "instructor": "Sarah Johnson",
        "difficulty": "Intermediate",
        "duration": "8 weeks",
        "category": "Web Development",
        "syllabus": [
            "React Fundamentals and JSX",
            "Components and Props",
            "State Management with Hooks",
            "Context API and Global State",
            "Performance Optimization",
            "Testing React Applications",
            "Deployment and Production",
        ],
    },
    {
        "title": "Machine Learning Fundamentals",
        "description": "Learn the basics of machine learning with Python, covering algorithms, data preprocessing, and model evaluation. Perfect for beginners.",
        "instructor": "Dr. Michael Chen",
        "difficulty": "Beginner",
        "duration": "10 weeks",
        "category": "Machine Learning",
        "syllabus": [
            "Introduction to Machine Learning",
            "Data Preprocessing and Cleaning",
            "Supervised Learning Algorithms",
            "Unsupervised Learning Techniques",
            "Model Evaluation and Validation",
        ],
    },
    {
        "title": "Advanced JavaScript Concepts",
        "description": "Deep dive into advanced JavaScript concepts including closures, prototypes, async programming, and design patterns.",
        "instructor": "Alex Rodriguez",
        "difficulty": "Advanced",
        "duration": "6 weeks",
        "category": "Programming",
        "syllabus": [
            "Closures and Lexical Scope",
            "Prototypes and Inheritance",
            "Asynchronous Programming",
            "Design Patterns in JavaScript",
        ],
    },
    {
        "title": "Python for Data Science",
        "description": "Complete guide to using Python for data science, including pandas, numpy, matplotlib, and scikit-learn.",
        "instructor": "Dr. Emily Davis",
        "difficulty": "Intermediate",
        "duration": "12 weeks",
        "category": "Data Science",
        "syllabus": [
            "Python Basics for Data Science",
            "NumPy for Numerical Computing",
            "Pandas for Data Manipulation",
            "Data Visualization with Matplotlib",
        ],
    },
    {
        "title": "Full Stack Web Development",
        "description": "Learn to build complete web applications using modern technologies including React, Node.js, Express, and MongoDB.",
        "instructor": "Mark Thompson",
        "difficulty": "Intermediate",
        "duration": "16 weeks",
        "category": "Web Development",
        "syllabus": [
            "Frontend Development with React",
            "Backend Development with Node.js",
            "Database Design with MongoDB",
            "RESTful API Development",
        ],
    },
    {
        "title": "Mobile App Development with React Native",
        "description": "Create cross-platform mobile applications using React Native. Learn to build apps for both iOS and Android.",
        "instructor": "Lisa Wang",
        "difficulty": "Intermediate",
        "duration": "10 weeks",
        "category": "Mobile Development",
        "syllabus": [
            "React Native Fundamentals",
            "Navigation and Routing",
            "Native Device Features",
            "App Store Deployment",
        ],
    },
]

# (student index, course index, progress, completed module indexes)
ENROLLMENTS = [
    (0, 0, 65, [0, 1, 2]),
    (0, 1, 100, [0, 1, 2, 3, 4]),
    (1, 1, 80, [0, 1, 2, 3]),
    (1, 3, 45, [0, 1]),
    (2, 4, 30, [0]),
]

# (student index, course index, rating, comment)
REVIEWS = [
    (0, 1, 5, "Excellent course! Really helped me understand machine learning concepts deeply. The hands-on projects were very valuable."),
    (1, 1, 4, "Great course content and well-structured. Could use more advanced topics but perfect for beginners."),
    (0, 0, 5, "Amazing React course! Covers everything from basics to advanced concepts."),
    (2, 4, 4, "Comprehensive full stack course. Lots of content to cover but very thorough."),
]


async def seed(db):
    for name in ("users", "courses", "enrollments", "reviews", "notes"):
        await db[name].delete_many({})
    logger.info("Cleared existing data")

    await create_indexes(db)

    now = utcnow()
    admin = UserDocument(
        user_id=new_id("USR"),
        name=ADMIN["name"],
        email=ADMIN["email"],
        password_hash=hash_password(ADMIN["password"]),
        role=UserRole.ADMIN,
        email_verified=True,
        created_at=now,
        updated_at=now,
    ).model_dump()
    await db.users.insert_one(admin)

    users = UserService(db)
    student_ids = []
    for student in STUDENTS:
        result = await users.register(student["name"], student["email"], STUDENT_PASSWORD)
        user_id = result.data["user"]["user_id"]
        await users.update_profile(user_id, ProfileUpdate(profile=student["profile"]))
        student_ids.append(user_id)
    logger.info("Created %d students", len(student_ids))

    catalog = CourseService(db)
    course_ids = []
    for course in COURSES:
        result = await catalog.create_course(CourseCreate(**course), created_by=admin["user_id"])
        course_ids.append(result.data["course_id"])
    logger.info("Created %d courses", len(course_ids))

    enrollments = EnrollmentService(db)
    for student, course, progress, modules in ENROLLMENTS:
        result = await enrollments.enroll(student_ids[student], course_ids[course])
        enrollment_id = result.data["enrollment_id"]
        for module_index in modules:
            await enrollments.update_progress(
                enrollment_id, student_ids[student], progress, module_index
            )
    logger.info("Created %d enrollments", len(ENROLLMENTS))

    reviews = ReviewService(db)
    for student, course, rating, comment in REVIEWS:
        await reviews.create_review(student_ids[student], course_ids[course], rating, comment)
    logger.info("Created %d reviews", len(REVIEWS))

    logger.info("Admin login: %s / %s", ADMIN["email"], ADMIN["password"])
    logger.info("Student logins: %s / %s", ", ".join(s["email"] for s in STUDENTS), STUDENT_PASSWORD)


async def main():
    setup_logging()
    db_manager.connect()
    try:
        await seed(db_manager.get_database())
    finally:
        db_manager.disconnect()


if __name__ == "__main__":
    asyncio.run(main())
