import django.db.models.functions.text
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('marketplace', '0001_initial'),
    ]

    operations = [
        migrations.AddConstraint(
            model_name='skill',
            constraint=models.UniqueConstraint(
                django.db.models.functions.text.Lower('name'),
                'user',
                'side',
                name='unique_skill_name_per_side',
            ),
        ),
    ]
